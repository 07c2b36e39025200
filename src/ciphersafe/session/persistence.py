from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken


logger = logging.getLogger(__name__)

KEY_FILE_NAME = "session.key"


class SessionBackend(Protocol):
    def load(self) -> Optional[str]: ...

    def save(self, token: str) -> None: ...

    def clear(self) -> None: ...


class MemorySessionBackend:
    """No persistence: the session lives only as long as the process."""

    def load(self) -> Optional[str]:
        return None

    def save(self, token: str) -> None:
        pass

    def clear(self) -> None:
        pass


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


def _write_private(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


class EncryptedFileSessionBackend:
    """
    Keeps the session credential on disk, encrypted at rest using Fernet.

    Usage
    - Provide the session file path and, optionally, a Fernet key. Without a
      key, one is generated on first save and stored as `session.key` next to
      the session file (mode 0600).
    - An explicit key that is not a valid Fernet key raises `ValueError`.
    - `load()` returns the token or None. A file that cannot be decrypted
      (wrong key, truncated, tampered) is removed and treated as no session.
      A corrupt key file is removed together with the session file.
    """

    def __init__(self, path: os.PathLike[str] | str, *, fernet_key: Optional[str | bytes] = None) -> None:
        self._path = Path(path)
        self._key_path = self._path.parent / KEY_FILE_NAME
        self._fernet: Optional[Fernet] = _to_fernet(fernet_key) if fernet_key else None

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_fernet(self, *, create: bool) -> Optional[Fernet]:
        if self._fernet is not None:
            return self._fernet
        if self._key_path.exists():
            try:
                self._fernet = _to_fernet(self._key_path.read_bytes().strip())
            except ValueError:
                # Nothing encrypted with an unusable key can be read back
                logger.warning("Session key file %s is corrupt; discarding the stored session", self._key_path)
                self._key_path.unlink(missing_ok=True)
                self._path.unlink(missing_ok=True)
        if self._fernet is None and create:
            key = Fernet.generate_key()
            _write_private(self._key_path, key)
            self._fernet = _to_fernet(key)
        return self._fernet

    def load(self) -> Optional[str]:
        if not self._path.exists():
            return None
        fernet = self._ensure_fernet(create=False)
        if fernet is None:
            logger.warning("Session file %s has no key; ignoring it", self._path)
            self.clear()
            return None
        try:
            token = fernet.decrypt(self._path.read_bytes()).decode("utf-8")
        except (InvalidToken, UnicodeDecodeError):
            logger.warning("Session file %s could not be decrypted; ignoring it", self._path)
            self.clear()
            return None
        return token or None

    def save(self, token: str) -> None:
        fernet = self._ensure_fernet(create=True)
        assert fernet is not None
        _write_private(self._path, fernet.encrypt(token.encode("utf-8")))

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


__all__ = ["SessionBackend", "MemorySessionBackend", "EncryptedFileSessionBackend"]
