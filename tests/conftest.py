"""Test configuration and fixtures."""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from unittest.mock import Mock
from urllib.parse import urlparse

import pytest
import requests

from github_todo.github.client import GitHubClient

_SETTINGS_ENV_VARS = (
    "TODO_GITHUB_TOKEN",
    "TODO_REPOSITORY",
    "TODO_PROJECT_NUMBER",
    "TODO_COLUMN_NAME",
    "TODO_USER_AGENT",
    "TODO_TIMEZONE",
    "TODO_REQUEST_TIMEOUT",
    "GITHUB_BASE_URL",
    "LOG_LEVEL",
    "NO_COLOR",
)


def make_response(
    status: int,
    payload: Any = None,
    *,
    method: str = "GET",
    url: str = "https://api.github.com/repos/octocat/todo/issues",
) -> requests.Response:
    """Build a real `requests.Response` carrying a JSON payload."""

    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(payload).encode("utf-8")
    resp.headers["Content-Type"] = "application/json"
    resp.url = url
    resp.request = requests.Request(method, url).prepare()
    return resp


class FakeGitHubAPI:
    """In-memory stand-in for the REST endpoints the todo CLI uses.

    Install it as `session.request` to serve calls without network access.
    """

    def __init__(self, *, repository: str = "octocat/todo") -> None:
        self.repository = repository
        self.issues: dict[int, dict[str, Any]] = {}
        self.projects: list[dict[str, Any]] = []
        self.columns: dict[int, list[dict[str, Any]]] = {}
        self.cards: dict[int, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self._next_id = 1000

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_project(self, *, number: int, name: str, columns: list[str]) -> int:
        project_id = self._new_id()
        self.projects.append({"id": project_id, "number": number, "name": name})
        self.columns[project_id] = [{"id": self._new_id(), "name": c} for c in columns]
        return project_id

    def column_id(self, name: str) -> int:
        for columns in self.columns.values():
            for column in columns:
                if column["name"] == name:
                    return int(column["id"])
        raise KeyError(name)

    def __call__(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        path = urlparse(url).path
        self.calls.append((method, path))
        body: dict[str, Any] = kwargs.get("json") or {}
        repo_prefix = f"/repos/{self.repository}"

        if path == f"{repo_prefix}/issues":
            if method == "GET":
                open_issues = [i for i in self.issues.values() if i["state"] == "open"]
                return make_response(200, open_issues, method=method, url=url)
            number = len(self.issues) + 1
            issue = {
                "id": self._new_id(),
                "number": number,
                "title": body["title"],
                "body": body.get("body", ""),
                "state": "open",
            }
            self.issues[number] = issue
            return make_response(201, issue, method=method, url=url)

        m = re.fullmatch(rf"{re.escape(repo_prefix)}/issues/(\d+)", path)
        if m:
            issue = self.issues.get(int(m.group(1)))
            if issue is None:
                return make_response(404, {"message": "Not Found"}, method=method, url=url)
            if method == "PATCH":
                issue.update(body)
            return make_response(200, issue, method=method, url=url)

        if path == f"{repo_prefix}/projects":
            return make_response(200, self.projects, method=method, url=url)

        m = re.fullmatch(r"/projects/(\d+)/columns", path)
        if m:
            return make_response(200, self.columns.get(int(m.group(1)), []), method=method, url=url)

        m = re.fullmatch(r"/projects/columns/(\d+)/cards", path)
        if m:
            card = {"id": self._new_id(), **body}
            self.cards.setdefault(int(m.group(1)), []).append(card)
            return make_response(201, card, method=method, url=url)

        return make_response(404, {"message": "Not Found"}, method=method, url=url)


@pytest.fixture(autouse=True)
def clean_settings_env(tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from the developer's environment and `.env` file."""

    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def github_api() -> Mock:
    """A PyGithub stand-in whose authenticated user is 'octocat'."""

    api = Mock()
    api.get_user.return_value.login = "octocat"
    return api


@pytest.fixture
def fake_api() -> FakeGitHubAPI:
    return FakeGitHubAPI()


@pytest.fixture
def session(fake_api: FakeGitHubAPI) -> requests.Session:
    """A real session whose transport is replaced by the in-memory API."""

    s = requests.Session()
    s.request = Mock(side_effect=fake_api)  # type: ignore[method-assign]
    return s


@pytest.fixture
def client(session: requests.Session, github_api: Mock) -> GitHubClient:
    return GitHubClient(
        token="test-token",
        repository="todo",
        session=session,
        github_api=github_api,
    )


@pytest.fixture
def response_factory() -> Any:
    return make_response


@pytest.fixture(autouse=True)
def restore_root_logging() -> Any:
    """`configure_logging` replaces root handlers; put the originals back."""

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
