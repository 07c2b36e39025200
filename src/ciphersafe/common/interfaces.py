"""
Narrow interfaces to the presentation layer.

The core never renders anything itself: it reports outcomes through a
`Notifier`, asks yes/no questions through a `Confirmer`, writes to a
`Clipboard`, and moves between screens through a `Navigator`.
"""

from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class Confirmer(Protocol):
    def confirm(self, question: str) -> bool: ...


class Clipboard(Protocol):
    def write(self, text: str) -> None: ...


class Navigator(Protocol):
    def push(self, path: str) -> None: ...

    def replace(self, path: str) -> None: ...

    def redirect(self, path: str) -> None:
        """Hard redirect; used when the server invalidates the session."""
        ...


__all__ = ["Notifier", "Confirmer", "Clipboard", "Navigator"]
