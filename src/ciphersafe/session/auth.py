from __future__ import annotations

import logging

from ..common.api import CipherSafeClient
from ..common.interfaces import Navigator, Notifier
from ..common.transport import CipherSafeError
from .store import CredentialStore


logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard"
LOGIN_PATH = "/login"


def _error_message(exc: CipherSafeError, fallback: str) -> str:
    return getattr(exc, "server_message", None) or fallback


class AccountFlows:
    """
    Login and registration, as driven by the entry screens.

    Login is the only place a credential enters the store. Registration does
    not sign the user in; they are sent to the login screen afterwards.
    """

    def __init__(
        self,
        api: CipherSafeClient,
        store: CredentialStore,
        notifier: Notifier,
        navigator: Navigator,
    ) -> None:
        self._api = api
        self._store = store
        self._notifier = notifier
        self._navigator = navigator
        self.is_loading = False

    async def login(self, email: str, password: str) -> bool:
        self.is_loading = True
        try:
            token = await self._api.login(email, password)
        except CipherSafeError as exc:
            # A 401 here means bad credentials, not an expired session
            self._notifier.error(_error_message(exc, "Login failed"))
            return False
        finally:
            self.is_loading = False
        self._store.set_credential(token)
        logger.info("Signed in as %s", email)
        self._notifier.success("Logged in successfully!")
        self._navigator.push(DASHBOARD_PATH)
        return True

    async def register(self, email: str, password: str) -> bool:
        self.is_loading = True
        try:
            await self._api.register(email, password)
        except CipherSafeError as exc:
            self._notifier.error(_error_message(exc, "Registration failed"))
            return False
        finally:
            self.is_loading = False
        self._notifier.success("Registration successful! Please log in.")
        self._navigator.push(LOGIN_PATH)
        return True


__all__ = ["AccountFlows"]
