from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Project(BaseModel):
    """
    A named grouping of secrets owned by the session's user.

    Notes
    - The backend embeds a gorm model, so the id arrives as `ID` alongside
      `CreatedAt`/`UpdatedAt`/`DeletedAt`. Both `id` and `ID` are accepted.
    - A `secrets` field may be present on the wire (eager-loaded by the
      server). It is ignored: secrets are always fetched per selection.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: int = Field(..., validation_alias=AliasChoices("id", "ID"), description="Server-assigned id")
    name: str = Field(..., min_length=1)
    owner_id: int


class Secret(BaseModel):
    """A sensitive key/value pair scoped to exactly one project."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: int = Field(..., validation_alias=AliasChoices("id", "ID"))
    key: str
    value: str = Field(..., repr=False)
    project_id: int


class AuthInput(BaseModel):
    email: str
    password: str = Field(..., repr=False)


class TokenResponse(BaseModel):
    token: str = Field(..., min_length=1, repr=False)


class ProjectInput(BaseModel):
    name: str


class SecretInput(BaseModel):
    project_id: int
    key: str
    value: str = Field(..., repr=False)


class MessageResponse(BaseModel):
    message: Optional[str] = None


__all__ = [
    "Project",
    "Secret",
    "AuthInput",
    "TokenResponse",
    "ProjectInput",
    "SecretInput",
    "MessageResponse",
]
