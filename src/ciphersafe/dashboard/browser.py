from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..common.api import CipherSafeClient
from ..common.interfaces import Clipboard, Confirmer, Notifier
from ..common.models import Project, Secret
from ..common.transport import AuthorizationError, CipherSafeError


logger = logging.getLogger(__name__)

MASK = "••••••••••••"
DELETE_CONFIRMATION = "Are you sure you want to delete this secret?"


class BrowserState(str, enum.Enum):
    NO_PROJECTS_LOADED = "no_projects_loaded"
    PROJECTS_LOADED = "projects_loaded"
    PROJECT_SELECTED = "project_selected"
    SECRETS_LOADED = "secrets_loaded"


@dataclass
class ProjectForm:
    name: str = ""

    def reset(self) -> None:
        self.name = ""


@dataclass
class SecretForm:
    key: str = ""
    value: str = ""

    def reset(self) -> None:
        self.key = ""
        self.value = ""


class ProjectBrowser:
    """
    State machine behind the dashboard: projects, the selected project, its
    secrets and their reveal flags.

    Notes
    - Every operation catches client errors at its own boundary and reports
      them through the notifier; nothing propagates to the caller. A 401 is not
      reported here because the transport already signed the user out.
    - Selecting a project (even the selected one) clears secrets and reveal
      flags before the fetch is issued. Each fetch is tagged with the selection
      generation; a response for an older selection is dropped.
    - Create-secret re-fetches the list (the server may normalize what it
      stores); delete-secret removes the entry locally once the server agrees.
    - After `close()` late responses are discarded instead of applied.
    """

    def __init__(
        self,
        api: CipherSafeClient,
        notifier: Notifier,
        confirmer: Confirmer,
        clipboard: Optional[Clipboard] = None,
    ) -> None:
        self._api = api
        self._notifier = notifier
        self._confirmer = confirmer
        self._clipboard = clipboard

        self.projects: List[Project] = []
        self.selected_project: Optional[Project] = None
        self.secrets: List[Secret] = []
        self.visible: Dict[int, bool] = {}

        self.is_loading_projects = False
        self.is_loading_secrets = False
        self.project_form = ProjectForm()
        self.secret_form = SecretForm()

        self._projects_loaded = False
        self._secrets_loaded = False
        self._selection_generation = 0
        self._closed = False

    # --------------- Derived state ---------------
    @property
    def state(self) -> BrowserState:
        if self.selected_project is not None:
            return BrowserState.SECRETS_LOADED if self._secrets_loaded else BrowserState.PROJECT_SELECTED
        if self._projects_loaded:
            return BrowserState.PROJECTS_LOADED
        return BrowserState.NO_PROJECTS_LOADED

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear down; results of requests still in flight will be ignored."""
        self._closed = True

    # --------------- Projects ---------------
    async def list_projects(self) -> bool:
        self.is_loading_projects = True
        try:
            projects = await self._api.list_projects()
        except CipherSafeError as exc:
            if not self._closed:
                self._report(exc, "Failed to load projects")
            return False
        finally:
            self.is_loading_projects = False
        if self._closed:
            return False
        self.projects = projects
        self._projects_loaded = True
        return True

    async def create_project(self, name: Optional[str] = None) -> Optional[Project]:
        if name is not None:
            self.project_form.name = name
        name = self.project_form.name
        if not name or not name.strip():
            raise ValueError("project name is required")

        try:
            project = await self._api.create_project(name)
        except CipherSafeError as exc:
            if not self._closed:
                self._report(exc, "Failed to create project")
            return None
        if self._closed:
            return None
        # The server's copy is authoritative for the id
        self.projects = [project, *self.projects]
        self._projects_loaded = True
        self._notifier.success("Project created!")
        self.project_form.reset()
        return project

    async def select_project(self, project: Project) -> bool:
        # Synchronous part: nothing of the previous selection stays visible
        self.selected_project = project
        self.secrets = []
        self.visible = {}
        self._secrets_loaded = False
        return await self.list_secrets(project.id)

    # --------------- Secrets ---------------
    async def list_secrets(self, project_id: int) -> bool:
        """Re-fetch the secrets of `project_id`, which must be the selected project if any."""
        if self.selected_project is not None and self.selected_project.id != project_id:
            raise ValueError(f"project {project_id} is not the selected project")
        self._selection_generation += 1
        generation = self._selection_generation
        self.is_loading_secrets = True
        self.secrets = []
        try:
            secrets = await self._api.list_secrets(project_id)
        except CipherSafeError as exc:
            if self._is_current(generation):
                self.is_loading_secrets = False
                self._report(exc, "Failed to load secrets")
            return False

        if not self._is_current(generation):
            logger.debug("Dropping stale secrets response for project %s", project_id)
            return False
        self.is_loading_secrets = False
        self.secrets = secrets
        self._secrets_loaded = True
        return True

    async def create_secret(self, key: Optional[str] = None, value: Optional[str] = None) -> bool:
        if self.selected_project is None:
            return False
        if key is not None:
            self.secret_form.key = key
        if value is not None:
            self.secret_form.value = value
        if not self.secret_form.key or not self.secret_form.key.strip():
            raise ValueError("secret key is required")

        project_id = self.selected_project.id
        try:
            await self._api.create_secret(project_id, self.secret_form.key, self.secret_form.value)
        except CipherSafeError as exc:
            if not self._closed:
                self._report(exc, "Failed to create secret")
            return False
        if self._closed:
            return False
        self._notifier.success("Secret created!")
        self.secret_form.reset()
        # The selection may have moved on while the create was in flight
        if self.selected_project is not None and self.selected_project.id == project_id:
            await self.list_secrets(project_id)
        return True

    async def delete_secret(self, secret_id: int) -> bool:
        if not self._confirmer.confirm(DELETE_CONFIRMATION):
            return False
        try:
            await self._api.delete_secret(secret_id)
        except CipherSafeError as exc:
            if not self._closed:
                self._report(exc, "Failed to delete secret")
            return False
        if self._closed:
            return False
        self._notifier.success("Secret deleted")
        self.secrets = [s for s in self.secrets if s.id != secret_id]
        self.visible.pop(secret_id, None)
        return True

    # --------------- Reveal state ---------------
    def toggle_visibility(self, secret_id: int) -> bool:
        self.visible[secret_id] = not self.visible.get(secret_id, False)
        return self.visible[secret_id]

    def is_visible(self, secret_id: int) -> bool:
        return self.visible.get(secret_id, False)

    def display_value(self, secret: Secret) -> str:
        return secret.value if self.is_visible(secret.id) else MASK

    def copy_secret(self, secret: Secret) -> None:
        if self._clipboard is None:
            raise RuntimeError("no clipboard configured")
        self._clipboard.write(secret.value)
        self._notifier.success("Copied to clipboard!")

    # --------------- Internal ---------------
    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._selection_generation

    def _report(self, exc: CipherSafeError, fallback: str) -> None:
        if isinstance(exc, AuthorizationError):
            return
        msg = getattr(exc, "server_message", None)
        logger.debug("%s: %s", fallback, exc)
        self._notifier.error(msg or fallback)


__all__ = ["ProjectBrowser", "BrowserState", "ProjectForm", "SecretForm", "MASK"]
