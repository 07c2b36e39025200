import os
import sys
from typing import List, Tuple

import pytest


def pytest_configure():
    # Ensure `src/` is importable for `ciphersafe.*` imports without installing
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    @property
    def errors(self) -> List[str]:
        return [m for kind, m in self.messages if kind == "error"]

    @property
    def successes(self) -> List[str]:
        return [m for kind, m in self.messages if kind == "success"]


class ScriptedConfirmer:
    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.questions: List[str] = []

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        return self.answer


class RecordingClipboard:
    def __init__(self) -> None:
        self.writes: List[str] = []

    def write(self, text: str) -> None:
        self.writes.append(text)


class RecordingNavigator:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, str]] = []

    def push(self, path: str) -> None:
        self.calls.append(("push", path))

    def replace(self, path: str) -> None:
        self.calls.append(("replace", path))

    def redirect(self, path: str) -> None:
        self.calls.append(("redirect", path))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def confirmer() -> ScriptedConfirmer:
    return ScriptedConfirmer()


@pytest.fixture
def clipboard() -> RecordingClipboard:
    return RecordingClipboard()


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()
