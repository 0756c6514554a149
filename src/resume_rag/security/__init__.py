"""Encryption at rest for manifests, repo metadata and eval logs."""

from resume_rag.security.encryption import (
    PREFIX,
    is_encrypted,
    encrypt_string,
    decrypt_string,
    seal,
    unseal,
    read_text_maybe_encrypted,
    write_text_maybe_encrypted,
)

__all__ = [
    "PREFIX",
    "is_encrypted",
    "encrypt_string",
    "decrypt_string",
    "seal",
    "unseal",
    "read_text_maybe_encrypted",
    "write_text_maybe_encrypted",
]
