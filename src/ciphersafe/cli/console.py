"""Terminal implementations of the presentation interfaces."""

from __future__ import annotations

import logging
from typing import List

import click

from ..session.store import CredentialStore


logger = logging.getLogger(__name__)


class ConsoleNotifier:
    def success(self, message: str) -> None:
        click.secho(f"✅ {message}", fg="green", err=True)

    def error(self, message: str) -> None:
        click.secho(f"❌ {message}", fg="red", err=True)


class ConsoleConfirmer:
    def __init__(self, *, assume_yes: bool = False) -> None:
        self._assume_yes = assume_yes
        self.declined = False

    def confirm(self, question: str) -> bool:
        answer = self._assume_yes or click.confirm(question, default=False, err=True)
        self.declined = not answer
        return answer


class StdoutClipboard:
    """Writes the copied text to stdout so it can be piped (e.g. into `pbcopy`)."""

    def write(self, text: str) -> None:
        click.echo(text, nl=False)


class ConsoleNavigator:
    """
    There are no screens in a terminal; navigation is recorded and a hint is
    printed when a held session is dropped and the user is sent back to the
    login entry point. A rejected sign-in with no session held prints nothing.
    """

    def __init__(self, store: CredentialStore, login_path: str = "/login") -> None:
        self._login_path = login_path
        self._session_lost = False
        self.history: List[str] = []
        # The store only notifies a clear when a credential was actually held
        store.subscribe(self._on_session_change)

    def _on_session_change(self, store: CredentialStore) -> None:
        self._session_lost = not store.is_authenticated

    def push(self, path: str) -> None:
        self._go(path)

    def replace(self, path: str) -> None:
        if self.history:
            self.history.pop()
        self._go(path)

    def redirect(self, path: str) -> None:
        if path == self._login_path and self._session_lost:
            click.secho("Session expired. Run `ciphersafe login` to sign in again.", fg="yellow", err=True)
        self._go(path)

    def _go(self, path: str) -> None:
        logger.debug("navigate -> %s", path)
        self.history.append(path)


__all__ = ["ConsoleNotifier", "ConsoleConfirmer", "StdoutClipboard", "ConsoleNavigator"]
