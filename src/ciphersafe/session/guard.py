from __future__ import annotations

import enum
import logging
from typing import Callable, Optional

from ..common.interfaces import Navigator, Notifier
from .store import CredentialStore, SessionStatus


logger = logging.getLogger(__name__)

DEFAULT_LOGIN_PATH = "/login"


class GuardView(str, enum.Enum):
    LOADING = "loading"
    PROTECTED = "protected"
    REDIRECTED = "redirected"


class SessionGuard:
    """
    Gate for protected views.

    - While the store has not been hydrated the guard shows LOADING: neither
      protected content nor the login screen.
    - An unauthenticated store sends the user to the login path (replace, so
      the protected view is not left in history).
    - Once activated, the check re-runs on every store change, so a 401 that
      clears the store while the view is open evicts the user.
    """

    def __init__(
        self,
        store: CredentialStore,
        navigator: Navigator,
        notifier: Notifier,
        *,
        login_path: str = DEFAULT_LOGIN_PATH,
    ) -> None:
        self._store = store
        self._navigator = navigator
        self._notifier = notifier
        self._login_path = login_path
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._view = GuardView.LOADING

    @property
    def view(self) -> GuardView:
        return self._view

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def activate(self) -> GuardView:
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(lambda _store: self.check())
        return self.check()

    def deactivate(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def check(self) -> GuardView:
        status = self._store.status
        if status is SessionStatus.UNDETERMINED:
            self._view = GuardView.LOADING
        elif status is SessionStatus.UNAUTHENTICATED:
            if self._view is not GuardView.REDIRECTED:
                logger.debug("No session; redirecting to %s", self._login_path)
                self._navigator.replace(self._login_path)
            self._view = GuardView.REDIRECTED
        else:
            self._view = GuardView.PROTECTED
        return self._view

    def logout(self) -> None:
        """User-initiated sign-out."""
        # Leave the guard first so the store change does not trigger a second navigation
        self.deactivate()
        self._store.clear_credential()
        self._view = GuardView.REDIRECTED
        self._notifier.success("Logged out")
        self._navigator.push(self._login_path)


__all__ = ["SessionGuard", "GuardView"]
