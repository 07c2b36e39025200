from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from cryptography.fernet import Fernet
from pydantic import BaseModel, Field


# Environment variable names
ENV_API_URL = "CIPHERSAFE_API_URL"
ENV_TIMEOUT = "CIPHERSAFE_TIMEOUT"
ENV_SESSION_FILE = "CIPHERSAFE_SESSION_FILE"
ENV_SESSION_KEY = "CIPHERSAFE_SESSION_KEY"
ENV_LOGIN_PATH = "CIPHERSAFE_LOGIN_PATH"

# Fallback shared with the web front end's deployment config
FALLBACK_ENV_API_URL = "API_URL"

DEFAULT_TIMEOUT = 15.0
DEFAULT_LOGIN_PATH = "/login"


def _default_session_file() -> Path:
    return Path.home() / ".ciphersafe" / "session"


def _getenv(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    v = env.get(name)
    return v if v not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


def _check_fernet_key(v: Optional[str], what: str) -> Optional[str]:
    if v is None:
        return None
    try:
        Fernet(v.encode("utf-8"))
    except ValueError as exc:
        raise RuntimeError(f"Invalid {what}: expected a url-safe base64-encoded 32-byte Fernet key") from exc
    return v


class Settings(BaseModel):
    """
    Runtime configuration for the CipherSafe client.

    Fields
    - api_url: base URL of the CipherSafe backend (e.g., "http://localhost:8080").
    - timeout: HTTP timeout in seconds applied to every request.
    - session_file: where the encrypted session credential is kept between runs.
    - session_key: Fernet key for the session file. When None, a key file is
      created next to the session file on first use.
    - login_path: navigation entry point used after logout or a 401.
    """

    api_url: str = Field(..., min_length=1)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    session_file: Path = Field(default_factory=_default_session_file)
    session_key: Optional[str] = Field(default=None, repr=False)
    login_path: str = DEFAULT_LOGIN_PATH

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "Settings":
        """Build settings from the environment; keyword overrides win when not None."""
        env = os.environ if env is None else env

        api_url = overrides.get("api_url") or _getenv(env, ENV_API_URL) or _getenv(env, FALLBACK_ENV_API_URL)
        api_url = _require(api_url, ENV_API_URL)

        raw_timeout = _getenv(env, ENV_TIMEOUT)
        try:
            timeout = float(raw_timeout) if raw_timeout is not None else DEFAULT_TIMEOUT
        except ValueError as exc:
            raise RuntimeError(f"Invalid {ENV_TIMEOUT}: {raw_timeout!r}") from exc
        if overrides.get("timeout") is not None:
            timeout = float(overrides["timeout"])

        session_file = overrides.get("session_file") or _getenv(env, ENV_SESSION_FILE)
        return cls(
            api_url=api_url.rstrip("/"),
            timeout=timeout,
            session_file=Path(session_file).expanduser() if session_file else _default_session_file(),
            session_key=_check_fernet_key(_getenv(env, ENV_SESSION_KEY), ENV_SESSION_KEY),
            login_path=_getenv(env, ENV_LOGIN_PATH, DEFAULT_LOGIN_PATH) or DEFAULT_LOGIN_PATH,
        )


__all__ = ["Settings"]
