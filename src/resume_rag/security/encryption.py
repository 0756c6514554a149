"""
Envelope encryption for JSON blobs kept on local disk.

Payload layout: "ENC:" + base64(nonce[16] || tag[16] || ciphertext)
- Key: SHA-256 of the secret, so any passphrase length works
- Cipher: AES-256-GCM, fresh random nonce per call

Strings without the "ENC:" prefix pass through decrypt_string untouched,
so data written before encryption was enabled stays readable.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from resume_rag.core.errors import DecryptionError

PREFIX = "ENC:"
NONCE_SIZE = 16
TAG_SIZE = 16


def _derive_key(secret: str) -> bytes:
    return hashlib.sha256(secret.encode("utf-8")).digest()


def is_encrypted(data: str) -> bool:
    """True if the string carries the encryption sentinel."""
    return data.startswith(PREFIX)


def encrypt_string(plain: str, secret: str) -> str:
    """Encrypt plaintext with a key derived from secret."""
    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(_derive_key(secret)).encrypt(nonce, plain.encode("utf-8"), None)
    # AESGCM appends the tag; the stored layout puts it before the ciphertext
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    payload = base64.b64encode(nonce + tag + ciphertext).decode("ascii")
    return PREFIX + payload


def decrypt_string(data: str, secret: str) -> str:
    """
    Decrypt a payload produced by encrypt_string.

    Raises:
        DecryptionError: payload is malformed or the secret is wrong
    """
    if not is_encrypted(data):
        return data

    try:
        payload = base64.b64decode(data[len(PREFIX):].strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"Encrypted payload is not valid base64: {e}") from e

    if len(payload) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionError("Encrypted payload is truncated")

    nonce = payload[:NONCE_SIZE]
    tag = payload[NONCE_SIZE:NONCE_SIZE + TAG_SIZE]
    ciphertext = payload[NONCE_SIZE + TAG_SIZE:]

    try:
        plain = AESGCM(_derive_key(secret)).decrypt(nonce, ciphertext + tag, None)
        return plain.decode("utf-8")
    except InvalidTag as e:
        raise DecryptionError("Authentication failed (wrong secret or tampered data)") from e
    except UnicodeDecodeError as e:
        raise DecryptionError(f"Decrypted payload is not UTF-8: {e}") from e


# ---------------------------------------------------------------------------
# FILE HELPERS
# ---------------------------------------------------------------------------


def seal(text: str, secret: str | None) -> str:
    """Encrypt when a secret is configured, otherwise return text unchanged."""
    return encrypt_string(text, secret) if secret else text


def unseal(text: str, secret: str | None) -> str:
    """Decrypt when a secret is configured, otherwise return text unchanged."""
    return decrypt_string(text, secret) if secret else text


def write_text_maybe_encrypted(path: Path, text: str, secret: str | None) -> None:
    """Write a text file, sealing it first if a secret is set."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(seal(text, secret), encoding="utf-8")


def read_text_maybe_encrypted(path: Path, secret: str | None) -> str:
    """Read a text file, unsealing it if a secret is set."""
    return unseal(path.read_text(encoding="utf-8"), secret)
