"""Todo creation workflow.

A todo is an issue placed as a card in a project column:
- resolve the configured project
- resolve the column and create the issue concurrently
- attach the issue to the column as a card

Once the issue exists it is never rolled back. If the board placement fails
afterwards, the created issue is still returned together with a warning.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import requests

from github_todo.github.client import Card, Column, GitHubClient, Issue, RequestFailed

logger = logging.getLogger(__name__)


class NotFound(LookupError):
    """A board resource the workflow depends on does not exist."""


class ProjectNotFound(NotFound):
    def __init__(self, number: int) -> None:
        self.number = number
        super().__init__(f"Project #{number} not found")


class ColumnNotFound(NotFound):
    def __init__(self, name: str, project_id: int) -> None:
        self.name = name
        self.project_id = project_id
        super().__init__(f"Column {name!r} not found in project {project_id}")


@dataclass(frozen=True, slots=True)
class TodoCreated:
    """Result of creating a todo.

    `card` is None when the issue was created but could not be placed on the
    board; `warnings` then says why.
    """

    issue: Issue
    card: Card | None
    warnings: list[str] = field(default_factory=list)

    @property
    def on_board(self) -> bool:
        return self.card is not None


class TodoService:
    """Compose the resource calls that make up a todo."""

    def __init__(
        self,
        *,
        github: GitHubClient,
        project_number: int,
        column_name: str,
    ) -> None:
        self._github = github
        self._project_number = project_number
        self._column_name = column_name

    def _resolve_column(self, project_id: int) -> Column:
        column = self._github.column_get(name=self._column_name, project_id=project_id)
        if column is None:
            raise ColumnNotFound(self._column_name, project_id)
        return column

    def create_todo(self, *, title: str, body: str = "") -> TodoCreated:
        """Create an issue and drop it into the todo column.

        Raises:
            ProjectNotFound: before anything is created.
            RequestFailed: if the issue itself could not be created.
        """

        if not title.strip():
            raise ValueError("Todo title is required")

        project = self._github.project_get(self._project_number)
        if project is None:
            raise ProjectNotFound(self._project_number)

        # Both branches share the client's requests.Session; two independent
        # requests on one session only contend for its connection pool, which is thread-safe.
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="todo") as pool:
            column_future = pool.submit(self._resolve_column, project.id)
            issue_future = pool.submit(self._github.issue_create, title=title, body=body)

            # An issue failure wins: nothing was created, so there is nothing to report.
            issue = issue_future.result()
            column_error = column_future.exception()

        if column_error is not None:
            if not isinstance(column_error, (NotFound, RequestFailed, requests.RequestException)):
                raise column_error
            return self._partial(issue, f"Issue not placed on the board: {column_error}")

        column = column_future.result()
        try:
            card = self._github.card_create(column_id=column.id, content_id=issue.id)
        except (RequestFailed, requests.RequestException) as e:
            return self._partial(issue, f"Issue not placed on column {column.name!r}: {e}")

        logger.info(
            "Todo created",
            extra={"issue_number": issue.number, "card_id": card.id, "column_id": column.id},
        )
        return TodoCreated(issue=issue, card=card)

    @staticmethod
    def _partial(issue: Issue, warning: str) -> TodoCreated:
        logger.warning(warning, extra={"issue_number": issue.number})
        return TodoCreated(issue=issue, card=None, warnings=[warning])
