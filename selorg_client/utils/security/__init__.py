"""Security utilities."""

from .credential_store import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "ACCESS_TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
]
