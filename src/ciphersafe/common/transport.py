from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..session.store import CredentialStore
from .interfaces import Navigator


logger = logging.getLogger(__name__)

DEFAULT_LOGIN_PATH = "/login"


class CipherSafeError(RuntimeError):
    """Base error for the CipherSafe client."""


class AuthorizationError(CipherSafeError):
    """The server answered 401; the session has already been cleared."""

    def __init__(self, message: str, *, server_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.server_message = server_message


class ApiRequestError(CipherSafeError):
    """The server answered with a non-2xx status other than 401."""

    def __init__(self, message: str, *, status_code: Optional[int], server_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class MalformedResponseError(ApiRequestError):
    """A success response whose body could not be decoded or validated.

    `status_code` is None when the body decoded but did not match the expected model.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code)


class NetworkError(CipherSafeError):
    """No response was received (connection failure, timeout, ...)."""


def _server_message(resp: httpx.Response) -> Optional[str]:
    # Backend error bodies look like {"error": "..."}
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        msg = body.get("error")
        if isinstance(msg, str) and msg:
            return msg
    return None


class AuthorizingTransport:
    """
    Wraps an `httpx.AsyncClient` so every request carries the session credential.

    Notes
    - Outbound: the credential store is read at send time; when a credential is
      present it is attached as `Authorization: Bearer <token>`, otherwise the
      request goes out unauthenticated and the server decides.
    - Inbound: a 401 clears the store and asks the navigator for a hard
      redirect to the login path before `AuthorizationError` is raised. Every
      other status passes through; non-2xx raise `ApiRequestError`.
    - Never retries and never rewrites request bodies.
    """

    def __init__(
        self,
        store: CredentialStore,
        *,
        base_url: str,
        navigator: Optional[Navigator] = None,
        login_path: str = DEFAULT_LOGIN_PATH,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._store = store
        self._navigator = navigator
        self._login_path = login_path
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self._base_url, timeout=timeout)

    @property
    def store(self) -> CredentialStore:
        return self._store

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AuthorizingTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --------------- Public API ---------------
    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json_body: Dict[str, Any]) -> Any:
        return await self.request("POST", path, json_body=json_body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def request(self, method: str, path: str, *, json_body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send `method path` and return the decoded JSON body (None when empty).

        Raises AuthorizationError on 401, ApiRequestError on other non-2xx,
        MalformedResponseError on an undecodable 2xx body and NetworkError
        when no response was received.
        """
        headers: Dict[str, str] = {}
        token = self._store.get_credential()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            resp = await self._client.request(method, url, json=json_body, headers=headers)
        except httpx.TransportError as exc:  # includes timeouts
            logger.debug("%s %s failed: %s", method, path, exc.__class__.__name__)
            raise NetworkError(f"{method} {path} failed: no response from server") from exc

        logger.debug("%s %s -> %s", method, path, resp.status_code)
        return self._handle_response(method, path, resp)

    # --------------- Internal ---------------
    def _handle_response(self, method: str, path: str, resp: httpx.Response) -> Any:
        if resp.status_code == 401:
            msg = _server_message(resp)
            self._invalidate_session()
            raise AuthorizationError(msg or "Session is no longer valid", server_message=msg)

        if not resp.is_success:
            msg = _server_message(resp)
            raise ApiRequestError(
                f"HTTP {resp.status_code} from {method} {path}" + (f": {msg}" if msg else ""),
                status_code=resp.status_code,
                server_message=msg,
            )

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"Failed to parse JSON from {method} {path}", status_code=resp.status_code
            ) from exc

    def _invalidate_session(self) -> None:
        logger.info("Server rejected the session credential; signing out")
        self._store.clear_credential()
        if self._navigator is not None:
            self._navigator.redirect(self._login_path)


__all__ = [
    "AuthorizingTransport",
    "CipherSafeError",
    "AuthorizationError",
    "ApiRequestError",
    "MalformedResponseError",
    "NetworkError",
]
