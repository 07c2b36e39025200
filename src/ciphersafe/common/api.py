from __future__ import annotations

from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .models import AuthInput, MessageResponse, Project, ProjectInput, Secret, SecretInput, TokenResponse
from .transport import AuthorizingTransport, MalformedResponseError


M = TypeVar("M", bound=BaseModel)


def _parse(model: Type[M], payload: Any, what: str) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as ve:
        raise MalformedResponseError(f"Failed to parse {what}: {ve}") from ve


def _parse_list(model: Type[M], payload: Any, what: str) -> List[M]:
    # The backend encodes an empty result as `null`
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise MalformedResponseError(f"Expected a list of {what}")
    return [_parse(model, item, what) for item in payload]


class CipherSafeClient:
    """
    Typed access to the CipherSafe HTTP API.

    One method per endpoint; authorization is entirely the transport's job.
    Errors are the transport's `CipherSafeError` family.
    """

    def __init__(self, transport: AuthorizingTransport) -> None:
        self._transport = transport

    @property
    def transport(self) -> AuthorizingTransport:
        return self._transport

    # --------------- Auth ---------------
    async def register(self, email: str, password: str) -> MessageResponse:
        body = AuthInput(email=email, password=password).model_dump()
        data = await self._transport.post("/auth/register", body)
        return _parse(MessageResponse, data or {}, "register response")

    async def login(self, email: str, password: str) -> str:
        """Exchange credentials for a session token. Does not store it."""
        body = AuthInput(email=email, password=password).model_dump()
        data = await self._transport.post("/auth/login", body)
        return _parse(TokenResponse, data, "login response").token

    # --------------- Projects ---------------
    async def list_projects(self) -> List[Project]:
        data = await self._transport.get("/api/projects")
        return _parse_list(Project, data, "projects")

    async def create_project(self, name: str) -> Project:
        data = await self._transport.post("/api/projects", ProjectInput(name=name).model_dump())
        return _parse(Project, data, "project")

    # --------------- Secrets ---------------
    async def list_secrets(self, project_id: int) -> List[Secret]:
        data = await self._transport.get(f"/api/projects/{project_id}/secrets")
        return _parse_list(Secret, data, "secrets")

    async def create_secret(self, project_id: int, key: str, value: str) -> None:
        body = SecretInput(project_id=project_id, key=key, value=value).model_dump()
        await self._transport.post("/api/secrets", body)

    async def delete_secret(self, secret_id: int) -> None:
        await self._transport.delete(f"/api/secrets/{secret_id}")


__all__ = ["CipherSafeClient"]
