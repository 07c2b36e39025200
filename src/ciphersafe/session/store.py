from __future__ import annotations

import enum
import logging
from typing import Callable, List, Optional

from .persistence import MemorySessionBackend, SessionBackend


logger = logging.getLogger(__name__)

Listener = Callable[["CredentialStore"], None]


class SessionStatus(str, enum.Enum):
    UNDETERMINED = "undetermined"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class CredentialStore:
    """
    Single source of truth for the session credential.

    - Reads are synchronous and never block; there is no network I/O here.
    - Writes go through to the injected persistence backend and then notify
      subscribers (the session guard, the CLI) so they can react to
      invalidation triggered elsewhere, e.g. by a 401 in the transport.
    - Until `hydrate()` (or any write) runs, the status is UNDETERMINED.
    """

    def __init__(self, backend: Optional[SessionBackend] = None) -> None:
        self._backend: SessionBackend = backend or MemorySessionBackend()
        self._token: Optional[str] = None
        self._hydrated = False
        self._listeners: List[Listener] = []

    # --------------- Reads ---------------
    def get_credential(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    @property
    def status(self) -> SessionStatus:
        if not self._hydrated:
            return SessionStatus.UNDETERMINED
        return SessionStatus.AUTHENTICATED if self._token else SessionStatus.UNAUTHENTICATED

    # --------------- Writes ---------------
    def hydrate(self) -> None:
        """Load a previously persisted credential, if any, and mark the status determined."""
        token = self._backend.load()
        changed = not self._hydrated or token != self._token
        self._token = token or None
        self._hydrated = True
        logger.debug("Session hydrated (authenticated=%s)", self.is_authenticated)
        if changed:
            self._notify()

    def set_credential(self, token: str) -> None:
        if not token:
            raise ValueError("token is required")
        self._token = token
        self._hydrated = True
        self._backend.save(token)
        self._notify()

    def clear_credential(self) -> None:
        """Drop the credential. Clearing an absent credential is a no-op."""
        had_token = self._token is not None
        was_hydrated = self._hydrated
        self._token = None
        self._hydrated = True
        self._backend.clear()
        if had_token or not was_hydrated:
            self._notify()

    # --------------- Observers ---------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def _notify(self) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            listener(self)


__all__ = ["CredentialStore", "SessionStatus"]
