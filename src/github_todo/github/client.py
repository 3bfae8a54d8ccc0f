"""GitHub REST client for the todo CLI.

Requests go through a `requests.Session` using "verb + path template" calls, the
way the GitHub REST docs describe endpoints. PyGithub is only used for the
"who am I" identity check that supplies the default repository owner.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests
from github import Auth, Github

logger = logging.getLogger(__name__)

SUCCESS_STATUSES: frozenset[int] = frozenset({200, 201})

# Classic projects are still behind a preview media type.
PROJECTS_PREVIEW_ACCEPT = "application/vnd.github.inertia-preview+json"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class RequestFailed(Exception):
    """Raised when GitHub answers with a status outside of 200/201.

    The full response context is kept for diagnostics.
    """

    def __init__(
        self,
        *,
        method: str,
        url: str,
        status: int,
        headers: dict[str, str],
        body: Any,
    ) -> None:
        self.method = method
        self.url = url
        self.status = status
        self.headers = headers
        self.body = body
        super().__init__(str(self))

    @classmethod
    def from_response(cls, response: requests.Response) -> RequestFailed:
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        request = response.request
        return cls(
            method=(request.method or "") if request is not None else "",
            url=response.url or ((request.url or "") if request is not None else ""),
            status=response.status_code,
            headers=dict(response.headers),
            body=body,
        )

    @property
    def message(self) -> str:
        if isinstance(self.body, dict):
            message = self.body.get("message")
            if isinstance(message, str) and message.strip():
                return message
        if isinstance(self.body, str) and self.body.strip():
            return self.body.strip()
        return "no details"

    def __str__(self) -> str:
        return f"{self.method} {self.url} failed with status {self.status}: {self.message}"


def get_data(response: requests.Response) -> Any:
    """Return the JSON payload of a successful response.

    Raises:
        RequestFailed: if the status is not 200 or 201.
    """

    if response.status_code in SUCCESS_STATUSES:
        return response.json()
    raise RequestFailed.from_response(response)


@dataclass(frozen=True, slots=True)
class Issue:
    """Snapshot of a GitHub issue."""

    id: int
    number: int
    title: str
    body: str
    state: str

    @staticmethod
    def from_json(data: dict[str, Any]) -> Issue:
        number = data.get("number")
        if not isinstance(number, int) or number <= 0:
            raise ValueError("Invalid issue response: missing number")
        issue_id = data.get("id")
        if not isinstance(issue_id, int):
            raise ValueError("Invalid issue response: missing id")

        title = data.get("title")
        body = data.get("body")
        state = data.get("state")
        return Issue(
            id=issue_id,
            number=number,
            title=title if isinstance(title, str) else "",
            body=body if isinstance(body, str) else "",
            state=state if isinstance(state, str) else "",
        )


@dataclass(frozen=True, slots=True)
class Project:
    """Snapshot of a classic repository project (board)."""

    id: int
    number: int
    name: str

    @staticmethod
    def from_json(data: dict[str, Any]) -> Project:
        project_id = data.get("id")
        number = data.get("number")
        if not isinstance(project_id, int) or not isinstance(number, int):
            raise ValueError("Invalid project response: missing id or number")
        name = data.get("name")
        return Project(id=project_id, number=number, name=name if isinstance(name, str) else "")


@dataclass(frozen=True, slots=True)
class Column:
    """Snapshot of a project column (lane)."""

    id: int
    name: str

    @staticmethod
    def from_json(data: dict[str, Any]) -> Column:
        column_id = data.get("id")
        if not isinstance(column_id, int):
            raise ValueError("Invalid column response: missing id")
        name = data.get("name")
        return Column(id=column_id, name=name if isinstance(name, str) else "")


@dataclass(frozen=True, slots=True)
class Card:
    """A placement of one issue within a project column."""

    id: int
    column_id: int
    content_id: int
    content_type: str


class GitHubClient:
    """Small wrapper around the GitHub REST API for the operations todos need.

    The repository may be given as "owner/repo" or as a bare "repo"; a bare name
    is owned by the authenticated user.
    """

    def __init__(
        self,
        *,
        token: str,
        repository: str,
        base_url: str = "https://api.github.com",
        user_agent: str = "todo/v0.1.0",
        timezone: str = "UTC",
        timeout: float = 30.0,
        session: requests.Session | None = None,
        github_api: Github | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")
        if not repository.strip().strip("/"):
            raise ValueError("GitHub repository is required")

        self._repository_setting = repository.strip().strip("/")
        self._rest_base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._login: str | None = None

        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": user_agent,
                "Time-Zone": timezone,
            }
        )

        self._github = github_api or Github(
            auth=Auth.Token(token),
            base_url=self._rest_base_url,
            user_agent=user_agent,
            timeout=timeout,
        )

    @property
    def login(self) -> str:
        """Login of the authenticated user (fetched once)."""

        if self._login is None:
            self._login = self._github.get_user().login
            logger.info("Authenticated with GitHub", extra={"login": self._login})
        return self._login

    @property
    def repository(self) -> str:
        """Return the target repository name ("owner/repo")."""

        if "/" in self._repository_setting:
            return self._repository_setting
        return f"{self.login}/{self._repository_setting}"

    def _owner_and_repo(self) -> tuple[str, str]:
        owner, _, repo = self.repository.partition("/")
        return owner, repo

    def _expand_path(self, path: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        remaining = dict(params)

        def _substitute(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in remaining:
                raise ValueError(f"Missing path parameter: {name}")
            return quote(str(remaining.pop(name)), safe="")

        expanded = _PLACEHOLDER.sub(_substitute, path)
        return expanded, remaining

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        **params: Any,
    ) -> requests.Response:
        """Issue `method` against a path template such as "/repos/{owner}/{repo}/issues".

        Parameters not consumed by the template become the query string for GET
        requests and the JSON body otherwise.
        """

        method = method.upper()
        expanded, remaining = self._expand_path(path, params)
        url = f"{self._rest_base_url}/{expanded.lstrip('/')}"

        kwargs: dict[str, Any] = {"timeout": self._timeout}
        if headers:
            kwargs["headers"] = headers
        if remaining:
            if method == "GET":
                kwargs["params"] = remaining
            else:
                kwargs["json"] = remaining

        logger.debug("GitHub request", extra={"method": method, "url": url})
        return self._session.request(method, url, **kwargs)

    # Issues
    # https://docs.github.com/en/rest/issues/issues

    def issue_create(self, *, title: str, body: str = "") -> Issue:
        if not title.strip():
            raise ValueError("Issue title is required")

        owner, repo = self._owner_and_repo()
        resp = self.request(
            "POST", "/repos/{owner}/{repo}/issues", owner=owner, repo=repo, title=title, body=body
        )
        issue = Issue.from_json(get_data(resp))
        logger.info("Issue created", extra={"issue_number": issue.number})
        return issue

    def issue_list(self) -> list[Issue]:
        """List open issues in server order.

        Only the first page is fetched. The issues endpoint also returns pull
        requests; those are skipped.
        """

        owner, repo = self._owner_and_repo()
        resp = self.request("GET", "/repos/{owner}/{repo}/issues", owner=owner, repo=repo)
        payload = get_data(resp)
        if not isinstance(payload, list):
            raise ValueError("Unexpected issue list response")
        return [
            Issue.from_json(item)
            for item in payload
            if isinstance(item, dict) and "pull_request" not in item
        ]

    def issue_get(self, number: int) -> Issue:
        if number <= 0:
            raise ValueError("issue number must be a positive integer")

        owner, repo = self._owner_and_repo()
        resp = self.request(
            "GET",
            "/repos/{owner}/{repo}/issues/{issue_number}",
            owner=owner,
            repo=repo,
            issue_number=number,
        )
        return Issue.from_json(get_data(resp))

    def issue_update(self, number: int, **fields: Any) -> Issue:
        """Patch an issue with arbitrary field overrides (title, body, state, ...)."""

        if number <= 0:
            raise ValueError("issue number must be a positive integer")

        owner, repo = self._owner_and_repo()
        resp = self.request(
            "PATCH",
            "/repos/{owner}/{repo}/issues/{issue_number}",
            owner=owner,
            repo=repo,
            issue_number=number,
            **fields,
        )
        issue = Issue.from_json(get_data(resp))
        logger.info("Issue updated", extra={"issue_number": number, "fields": sorted(fields)})
        return issue

    def issue_close(self, number: int) -> Issue:
        return self.issue_update(number, state="closed")

    # Classic projects
    # https://docs.github.com/en/rest/projects

    def project_get(self, number: int) -> Project | None:
        """Find the repository project whose number is `number`.

        Returns:
            The project, or None when no project matches.
        """

        owner, repo = self._owner_and_repo()
        resp = self.request(
            "GET",
            "/repos/{owner}/{repo}/projects",
            headers={"Accept": PROJECTS_PREVIEW_ACCEPT},
            owner=owner,
            repo=repo,
        )
        payload = get_data(resp)
        for item in payload if isinstance(payload, list) else []:
            if isinstance(item, dict) and item.get("number") == number:
                return Project.from_json(item)
        logger.debug("No project matched", extra={"project_number": number})
        return None

    def column_get(self, *, name: str, project_id: int) -> Column | None:
        """Find the column titled `name` in a project.

        Returns:
            The column, or None when no column matches.
        """

        resp = self.request(
            "GET",
            "/projects/{project_id}/columns",
            headers={"Accept": PROJECTS_PREVIEW_ACCEPT},
            project_id=project_id,
        )
        payload = get_data(resp)
        for item in payload if isinstance(payload, list) else []:
            if isinstance(item, dict) and item.get("name") == name:
                return Column.from_json(item)
        logger.debug("No column matched", extra={"column_name": name, "project_id": project_id})
        return None

    def card_create(
        self,
        *,
        column_id: int,
        content_id: int,
        content_type: str = "Issue",
    ) -> Card:
        resp = self.request(
            "POST",
            "/projects/columns/{column_id}/cards",
            headers={"Accept": PROJECTS_PREVIEW_ACCEPT},
            column_id=column_id,
            content_id=content_id,
            content_type=content_type,
        )
        data = get_data(resp)
        card_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(card_id, int):
            raise ValueError("Invalid card response: missing id")

        card = Card(
            id=card_id,
            column_id=column_id,
            content_id=content_id,
            content_type=content_type,
        )
        logger.info("Card created", extra={"card_id": card.id, "column_id": column_id})
        return card

    def close(self) -> None:
        """Close the underlying HTTP connections."""

        self._session.close()
        self._github.close()
        logger.debug("GitHub client closed")
