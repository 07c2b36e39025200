from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from ..common.api import CipherSafeClient
from ..common.config import Settings
from ..common.transport import AuthorizingTransport
from ..dashboard.browser import ProjectBrowser
from ..session.auth import AccountFlows
from ..session.guard import SessionGuard
from ..session.persistence import EncryptedFileSessionBackend
from ..session.store import CredentialStore
from .console import ConsoleConfirmer, ConsoleNavigator, ConsoleNotifier, StdoutClipboard


@dataclass
class App:
    """Everything one CLI invocation needs, wired together around a single credential store."""

    settings: Settings
    store: CredentialStore
    transport: AuthorizingTransport
    api: CipherSafeClient
    notifier: ConsoleNotifier
    navigator: ConsoleNavigator
    confirmer: ConsoleConfirmer
    guard: SessionGuard
    accounts: AccountFlows
    browser: ProjectBrowser

    async def aclose(self) -> None:
        self.guard.deactivate()
        self.browser.close()
        await self.transport.aclose()

    async def __aenter__(self) -> "App":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def build_app(
    settings: Settings,
    *,
    assume_yes: bool = False,
    client: Optional[httpx.AsyncClient] = None,
) -> App:
    """Wire the client and hydrate the session from disk."""
    backend = EncryptedFileSessionBackend(settings.session_file, fernet_key=settings.session_key)
    store = CredentialStore(backend)
    store.hydrate()

    notifier = ConsoleNotifier()
    navigator = ConsoleNavigator(store, settings.login_path)
    transport = AuthorizingTransport(
        store,
        base_url=settings.api_url,
        navigator=navigator,
        login_path=settings.login_path,
        timeout=settings.timeout,
        client=client,
    )
    api = CipherSafeClient(transport)
    confirmer = ConsoleConfirmer(assume_yes=assume_yes)
    return App(
        settings=settings,
        store=store,
        transport=transport,
        api=api,
        notifier=notifier,
        navigator=navigator,
        confirmer=confirmer,
        guard=SessionGuard(store, navigator, notifier, login_path=settings.login_path),
        accounts=AccountFlows(api, store, notifier, navigator),
        browser=ProjectBrowser(api, notifier, confirmer, StdoutClipboard()),
    )


__all__ = ["App", "build_app"]
