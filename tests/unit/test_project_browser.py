from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from ciphersafe.common.api import CipherSafeClient
from ciphersafe.common.models import Project, Secret
from ciphersafe.common.transport import AuthorizingTransport
from ciphersafe.dashboard.browser import MASK, BrowserState, ProjectBrowser
from ciphersafe.session.store import CredentialStore


BASE_URL = "http://ciphersafe.test"


class _FakeServer:
    """In-memory stand-in for the backend, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.projects: List[Dict[str, Any]] = []
        self.secrets: List[Dict[str, Any]] = []
        self.requests: List[httpx.Request] = []
        self.fail: Dict[str, httpx.Response] = {}  # "METHOD path" -> canned response
        self.gates: Dict[int, asyncio.Event] = {}  # project id -> release event for secrets fetch
        self._next_id = 100

    def add_project(self, pid: int, name: str) -> Project:
        raw = {"ID": pid, "name": name, "owner_id": 1}
        self.projects.append(raw)
        return Project.model_validate(raw)

    def add_secret(self, sid: int, project_id: int, key: str, value: str) -> None:
        self.secrets.append({"id": sid, "key": key, "value": value, "project_id": project_id})

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = f"{request.method} {request.url.path}"
        if route in self.fail:
            return self.fail[route]

        parts = request.url.path.strip("/").split("/")
        if route == "GET /api/projects":
            return httpx.Response(200, json=self.projects)
        if route == "POST /api/projects":
            body = json.loads(request.content)
            raw = {"ID": self._new_id(), "name": body["name"].strip(), "owner_id": 1}
            self.projects.append(raw)
            return httpx.Response(201, json=raw)
        if request.method == "GET" and parts[:2] == ["api", "projects"] and parts[-1] == "secrets":
            pid = int(parts[2])
            gate = self.gates.get(pid)
            if gate is not None:
                await gate.wait()
            rows = [s for s in self.secrets if s["project_id"] == pid]
            return httpx.Response(200, json=rows or None)
        if route == "POST /api/secrets":
            body = json.loads(request.content)
            # Server-side normalization the client does not know about
            self.add_secret(self._new_id(), body["project_id"], body["key"].upper(), body["value"])
            return httpx.Response(201, json={"message": "Secret created successfully"})
        if request.method == "DELETE" and parts[:2] == ["api", "secrets"]:
            sid = int(parts[2])
            self.secrets = [s for s in self.secrets if s["id"] != sid]
            return httpx.Response(204)
        return httpx.Response(404, json={"error": "not found"})

    def count(self, method: str, path: Optional[str] = None) -> int:
        return sum(1 for r in self.requests if r.method == method and (path is None or r.url.path == path))

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id


@pytest.fixture
def server() -> _FakeServer:
    return _FakeServer()


@pytest.fixture
def store() -> CredentialStore:
    s = CredentialStore()
    s.set_credential("tok")
    return s


@pytest.fixture
def browser(server, store, notifier, confirmer, clipboard) -> ProjectBrowser:
    http = httpx.AsyncClient(transport=httpx.MockTransport(server.handler), base_url=BASE_URL)
    api = CipherSafeClient(AuthorizingTransport(store, base_url=BASE_URL, client=http))
    return ProjectBrowser(api, notifier, confirmer, clipboard)


def _ids(items) -> List[int]:
    return [i.id for i in items]


# --------------- Projects ---------------
@pytest.mark.asyncio
async def test_list_projects_replaces_wholesale(server, browser):
    server.add_project(1, "infra")
    assert browser.state is BrowserState.NO_PROJECTS_LOADED

    assert await browser.list_projects() is True
    assert _ids(browser.projects) == [1]
    assert browser.state is BrowserState.PROJECTS_LOADED

    server.projects = [{"ID": 2, "name": "web", "owner_id": 1}]
    await browser.list_projects()
    assert _ids(browser.projects) == [2]
    assert browser.is_loading_projects is False


@pytest.mark.asyncio
async def test_list_projects_failure_keeps_previous_list(server, browser, notifier):
    server.add_project(1, "infra")
    await browser.list_projects()

    server.fail["GET /api/projects"] = httpx.Response(500, json={"error": "Failed to retrieve projects"})
    assert await browser.list_projects() is False

    assert _ids(browser.projects) == [1]
    assert notifier.errors == ["Failed to retrieve projects"]


@pytest.mark.asyncio
async def test_create_project_prepends_server_copy_and_resets_form(server, browser, notifier):
    server.add_project(3, "web")
    await browser.list_projects()
    server._next_id = 6  # next id handed out is 7

    browser.project_form.name = "infra"
    project = await browser.create_project()

    assert project == Project(id=7, name="infra", owner_id=1)
    assert browser.projects[0] == Project(id=7, name="infra", owner_id=1)
    assert _ids(browser.projects) == [7, 3]
    assert browser.project_form.name == ""
    assert notifier.successes == ["Project created!"]


@pytest.mark.asyncio
async def test_create_project_failure_keeps_list_and_form(server, browser, notifier):
    server.fail["POST /api/projects"] = httpx.Response(400, json={"error": "Key: 'projectInput.Name' Error"})

    assert await browser.create_project("infra") is None

    assert browser.projects == []
    assert browser.project_form.name == "infra"
    assert notifier.errors == ["Key: 'projectInput.Name' Error"]


@pytest.mark.asyncio
async def test_create_project_network_failure_uses_generic_message(store, notifier, confirmer):
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(boom), base_url=BASE_URL)
    api = CipherSafeClient(AuthorizingTransport(store, base_url=BASE_URL, client=http))
    browser = ProjectBrowser(api, notifier, confirmer)

    assert await browser.create_project("infra") is None
    assert browser.projects == []
    assert notifier.errors == ["Failed to create project"]
    assert store.get_credential() == "tok"


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["", "   "])
async def test_create_project_requires_name(server, browser, name):
    with pytest.raises(ValueError):
        await browser.create_project(name)
    assert server.requests == []


# --------------- Selection ---------------
@pytest.mark.asyncio
async def test_select_project_loads_its_secrets(server, browser):
    a = server.add_project(1, "infra")
    server.add_secret(10, 1, "DB_URL", "postgres://")
    server.add_secret(20, 2, "OTHER", "x")

    assert await browser.select_project(a) is True

    assert browser.selected_project == a
    assert _ids(browser.secrets) == [10]
    assert browser.state is BrowserState.SECRETS_LOADED
    assert browser.is_loading_secrets is False


@pytest.mark.asyncio
async def test_selection_clears_before_fetch_resolves(server, browser):
    a = server.add_project(1, "infra")
    b = server.add_project(2, "web")
    server.add_secret(10, 1, "A_KEY", "a")
    server.add_secret(20, 2, "B_KEY", "b")
    await browser.select_project(a)
    browser.toggle_visibility(10)

    server.gates[2] = asyncio.Event()
    task = asyncio.create_task(browser.select_project(b))
    await asyncio.sleep(0)

    # Fetch for B still pending: nothing of A is visible
    assert browser.selected_project == b
    assert browser.secrets == []
    assert browser.visible == {}
    assert browser.is_loading_secrets is True
    assert browser.state is BrowserState.PROJECT_SELECTED

    server.gates[2].set()
    assert await task is True
    assert _ids(browser.secrets) == [20]


@pytest.mark.asyncio
async def test_late_response_for_previous_selection_is_discarded(server, browser):
    a = server.add_project(1, "infra")
    b = server.add_project(2, "web")
    server.add_secret(10, 1, "A_KEY", "a")
    server.add_secret(20, 2, "B_KEY", "b")
    server.gates[1] = asyncio.Event()

    task_a = asyncio.create_task(browser.select_project(a))
    await asyncio.sleep(0)
    await browser.select_project(b)
    assert _ids(browser.secrets) == [20]

    # A's response arrives after B's
    server.gates[1].set()
    assert await task_a is False

    assert browser.selected_project == b
    assert _ids(browser.secrets) == [20]
    assert browser.visible == {}
    assert browser.is_loading_secrets is False


@pytest.mark.asyncio
async def test_select_a_then_b_concurrently_settles_on_b(server, browser):
    a = server.add_project(1, "infra")
    b = server.add_project(2, "web")
    server.add_secret(10, 1, "A_KEY", "a")
    server.add_secret(20, 2, "B_KEY", "b")

    await asyncio.gather(browser.select_project(a), browser.select_project(b))

    assert browser.selected_project == b
    assert all(s.project_id == 2 for s in browser.secrets)
    assert _ids(browser.secrets) == [20]


@pytest.mark.asyncio
async def test_reselecting_same_project_refetches(server, browser):
    a = server.add_project(1, "infra")
    server.add_secret(10, 1, "A_KEY", "a")
    await browser.select_project(a)
    browser.toggle_visibility(10)

    await browser.select_project(a)

    assert server.count("GET", "/api/projects/1/secrets") == 2
    assert browser.is_visible(10) is False


@pytest.mark.asyncio
async def test_secrets_fetch_failure_keeps_selection(server, browser, notifier):
    a = server.add_project(1, "infra")
    server.fail["GET /api/projects/1/secrets"] = httpx.Response(
        403, json={"error": "You do not have permission for this project"}
    )

    assert await browser.select_project(a) is False

    assert browser.selected_project == a
    assert browser.secrets == []
    assert browser.is_loading_secrets is False
    assert notifier.errors == ["You do not have permission for this project"]


@pytest.mark.asyncio
async def test_list_secrets_refuses_unselected_project(server, browser):
    a = server.add_project(1, "infra")
    await browser.select_project(a)
    with pytest.raises(ValueError):
        await browser.list_secrets(2)


# --------------- Secret mutations ---------------
@pytest.mark.asyncio
async def test_create_secret_refetches_instead_of_appending(server, browser, notifier):
    a = server.add_project(1, "infra")
    await browser.select_project(a)

    assert await browser.create_secret("stripe_api_key", "sk_live_123") is True

    # The server upper-cased the key; only a re-fetch can know that
    assert [s.key for s in browser.secrets] == ["STRIPE_API_KEY"]
    assert server.count("GET", "/api/projects/1/secrets") == 2
    assert browser.secret_form.key == "" and browser.secret_form.value == ""
    assert notifier.successes == ["Secret created!"]


@pytest.mark.asyncio
async def test_create_secret_failure_keeps_list_and_form(server, browser, notifier):
    a = server.add_project(1, "infra")
    server.add_secret(10, 1, "A_KEY", "a")
    await browser.select_project(a)
    server.fail["POST /api/secrets"] = httpx.Response(500, json={"error": "Failed to save secret"})

    assert await browser.create_secret("B_KEY", "b") is False

    assert _ids(browser.secrets) == [10]
    assert browser.secret_form.key == "B_KEY"
    assert notifier.errors == ["Failed to save secret"]


@pytest.mark.asyncio
async def test_create_secret_without_selection_is_noop(server, browser):
    assert await browser.create_secret("K", "V") is False
    assert server.requests == []


@pytest.mark.asyncio
async def test_delete_secret_confirmed_removes_only_that_id(server, browser, confirmer, notifier):
    a = server.add_project(1, "infra")
    for sid in (41, 42, 43):
        server.add_secret(sid, 1, f"K{sid}", "v")
    await browser.select_project(a)

    assert await browser.delete_secret(42) is True

    assert _ids(browser.secrets) == [41, 43]
    assert confirmer.questions == ["Are you sure you want to delete this secret?"]
    assert notifier.successes == ["Secret deleted"]
    # Local removal, no re-fetch
    assert server.count("GET", "/api/projects/1/secrets") == 1


@pytest.mark.asyncio
async def test_delete_secret_declined_sends_nothing(server, browser, confirmer, notifier):
    a = server.add_project(1, "infra")
    server.add_secret(42, 1, "K", "v")
    await browser.select_project(a)
    confirmer.answer = False

    assert await browser.delete_secret(42) is False

    assert server.count("DELETE") == 0
    assert _ids(browser.secrets) == [42]
    assert notifier.messages == []


@pytest.mark.asyncio
async def test_delete_secret_failure_keeps_list(server, browser, notifier):
    a = server.add_project(1, "infra")
    server.add_secret(42, 1, "K", "v")
    await browser.select_project(a)
    server.fail["DELETE /api/secrets/42"] = httpx.Response(404, json={"error": "Secret not found"})

    assert await browser.delete_secret(42) is False

    assert _ids(browser.secrets) == [42]
    assert notifier.errors == ["Secret not found"]


@pytest.mark.asyncio
async def test_delete_secret_not_in_list_is_noop_filter(server, browser):
    a = server.add_project(1, "infra")
    server.add_secret(42, 1, "K", "v")
    await browser.select_project(a)

    assert await browser.delete_secret(999) is True
    assert _ids(browser.secrets) == [42]


@pytest.mark.asyncio
async def test_unauthorized_signs_out_without_error_toast(server, browser, store, notifier):
    server.fail["GET /api/projects"] = httpx.Response(401, json={"error": "Invalid token"})

    assert await browser.list_projects() is False

    assert store.get_credential() is None
    assert notifier.errors == []


# --------------- Visibility ---------------
def test_toggle_twice_restores_and_never_touches_other_ids(browser):
    browser.visible[6] = True

    assert browser.toggle_visibility(5) is True
    assert browser.visible[6] is True
    assert browser.toggle_visibility(5) is False
    assert browser.is_visible(5) is False
    assert browser.visible[6] is True


def test_display_value_masks_until_revealed(browser):
    secret = Secret(id=5, key="K", value="sk_live_123", project_id=1)
    assert browser.display_value(secret) == MASK
    browser.toggle_visibility(5)
    assert browser.display_value(secret) == "sk_live_123"


def test_copy_secret_writes_clipboard(browser, clipboard, notifier):
    browser.copy_secret(Secret(id=5, key="K", value="sk_live_123", project_id=1))
    assert clipboard.writes == ["sk_live_123"]
    assert notifier.successes == ["Copied to clipboard!"]


# --------------- Teardown ---------------
@pytest.mark.asyncio
async def test_results_after_close_are_discarded(server, browser, notifier):
    a = server.add_project(1, "infra")
    server.add_secret(10, 1, "A_KEY", "a")
    server.gates[1] = asyncio.Event()

    task = asyncio.create_task(browser.select_project(a))
    await asyncio.sleep(0)
    browser.close()
    server.gates[1].set()

    assert await task is False
    assert browser.secrets == []
    assert notifier.messages == []
