"""Durable key/value storage for auth tokens."""

import asyncio
import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Union, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from ...core.exceptions import CredentialStoreError

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"


@runtime_checkable
class CredentialStore(Protocol):
    """Async key/value store holding the durable copy of the tokens."""

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""
        ...

    async def remove(self, key: str) -> None:
        """Remove ``key``; removing a missing key is not an error."""
        ...


class MemoryCredentialStore:
    """In-process store; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileCredentialStore:
    """
    JSON file store with optional Fernet encryption of every value.

    Writes are atomic (temp file + rename) and the file is created with
    0600 permissions. File I/O runs in a worker thread so the event loop
    never blocks on disk.
    """

    def __init__(
        self, path: Union[str, Path], encryption_key: Union[str, bytes, None] = None
    ):
        """
        Initialize file credential store.

        Args:
            path: Location of the JSON file
            encryption_key: Fernet key; values are stored in clear text when None

        Raises:
            CredentialStoreError: If the encryption key is invalid
        """
        self.path = Path(path)
        self._lock = asyncio.Lock()
        self._cipher: Optional[Fernet] = None

        if encryption_key:
            try:
                key = encryption_key.encode() if isinstance(encryption_key, str) else encryption_key
                self._cipher = Fernet(key)
            except (ValueError, TypeError) as e:
                raise CredentialStoreError(f"Invalid credential encryption key: {e}")

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read_sync)
        raw = data.get(key)
        if raw is None:
            return None
        return self._decode(key, raw)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_sync)
            data[key] = self._encode(value)
            await asyncio.to_thread(self._write_sync, data)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_sync)
            if key not in data:
                return
            del data[key]
            await asyncio.to_thread(self._write_sync, data)

    def _encode(self, value: str) -> str:
        if self._cipher is None:
            return value
        return self._cipher.encrypt(value.encode()).decode()

    def _decode(self, key: str, raw: str) -> Optional[str]:
        if self._cipher is None:
            return raw
        try:
            return self._cipher.decrypt(raw.encode()).decode()
        except InvalidToken:
            # Written with another key; treat as absent so the user logs in again
            logger.warning(f"Stored value for '{key}' could not be decrypted, ignoring it")
            return None

    def _read_sync(self) -> Dict[str, str]:
        try:
            if not self.path.exists():
                return {}
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise CredentialStoreError(
                f"Failed to read credential store: {e}", operation="read"
            ) from e

        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Credential store corrupted, ignoring contents: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error("Credential store has unexpected layout, ignoring contents")
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write_sync(self, data: Dict[str, str]) -> None:
        temp_path: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent, text=True, prefix=".credentials_"
            )
            # The file object owns fd from here on, so every exit closes it
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                os.fchmod(f.fileno(), stat.S_IRUSR | stat.S_IWUSR)
                json.dump(data, f)
            os.replace(temp_path, self.path)
            temp_path = None
        except OSError as e:
            raise CredentialStoreError(
                f"Failed to write credential store: {e}", operation="write"
            ) from e
        finally:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
