"""CLI entrypoint for the todo list.

Exactly one action runs per invocation. When several action flags are given,
the first one in ACTION_PRIORITY wins and the others are ignored with a warning.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from typing import TextIO

import requests
from github import GithubException
from pydantic import ValidationError

from github_todo import __version__
from github_todo.config import TodoSettings
from github_todo.github.client import GitHubClient, Issue, RequestFailed
from github_todo.github.todo_service import NotFound, TodoService
from github_todo.logging import configure_logging

logger = logging.getLogger(__name__)

ACTION_PRIORITY: tuple[str, ...] = ("title", "list", "view", "done")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_PARTIAL = 3

_GREEN = "\033[32m"
_LIGHT_GREEN = "\033[92m"
_GRAY_ITALIC = "\033[3;90m"
_RESET = "\033[0m"


def _issue_number(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid issue number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"issue number must be positive: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="todo",
        description="Dumb todo list backed by GitHub issues and a project board.",
    )
    parser.add_argument("--version", action="version", version=f"github-todo {__version__}")
    parser.add_argument("-t", "--title", default=None, help="Create new todo with title")
    parser.add_argument(
        "-b", "--body", default=None, help="Add body when creating a new todo"
    )
    parser.add_argument("-l", "--list", action="store_true", help="List open todos")
    parser.add_argument(
        "-v", "--view", type=_issue_number, default=None, metavar="NUMBER", help="Show todo details"
    )
    parser.add_argument(
        "-d", "--done", type=_issue_number, default=None, metavar="NUMBER", help="Close a todo"
    )
    return parser


def select_action(args: argparse.Namespace) -> tuple[str | None, list[str]]:
    """Return the action to run and the requested actions that will be ignored."""

    requested = [
        name for name in ACTION_PRIORITY if getattr(args, name) not in (None, False)
    ]
    if not requested:
        return None, []
    return requested[0], requested[1:]


def _use_color(stream: TextIO) -> bool:
    return "NO_COLOR" not in os.environ and stream.isatty()


def _paint(text: str, style: str, color: bool) -> str:
    return f"{style}{text}{_RESET}" if color else text


def _issue_line(issue: Issue, color: bool) -> str:
    return (
        f"{_paint(str(issue.number), _GREEN, color)} "
        f"{_paint(issue.title, _LIGHT_GREEN, color)}"
    )


def _run_action(
    action: str,
    args: argparse.Namespace,
    *,
    github: GitHubClient,
    settings: TodoSettings,
    color: bool,
) -> int:
    if action == "title":
        service = TodoService(
            github=github,
            project_number=settings.project_number,
            column_name=settings.column_name,
        )
        result = service.create_todo(title=args.title, body=args.body or "")
        print(_paint("CREATED:", _GRAY_ITALIC, color))
        print(_issue_line(result.issue, color))
        for warning in result.warnings:
            print(f"warning: {warning}", file=sys.stderr)
        return EXIT_OK if result.on_board else EXIT_PARTIAL

    if action == "list":
        for issue in github.issue_list():
            more = _paint(" ...", _GRAY_ITALIC, color) if issue.body else ""
            print(f"{_issue_line(issue, color)}{more}")
        return EXIT_OK

    if action == "view":
        issue = github.issue_get(args.view)
        print(_issue_line(issue, color))
        print(issue.body)
        return EXIT_OK

    if action == "done":
        issue = github.issue_close(args.done)
        print(_paint("DONE:", _GRAY_ITALIC, color))
        print(_issue_line(issue, color))
        return EXIT_OK

    raise ValueError(f"Unknown action: {action}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        parser.print_help()
        return EXIT_OK

    args = parser.parse_args(argv)
    if args.title is not None and not args.title.strip():
        parser.error("--title must not be empty")

    action, ignored = select_action(args)
    if action is None:
        parser.print_help()
        return EXIT_OK

    try:
        settings = TodoSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_USAGE

    configure_logging(settings.log_level)

    if ignored:
        logger.warning(
            "Multiple actions requested; running only the first",
            extra={"action": action, "ignored": ignored},
        )
    if args.body is not None and action != "title":
        logger.warning("--body is only used with --title; ignoring it")

    github = GitHubClient(
        token=settings.token,
        repository=settings.repository,
        base_url=settings.base_url,
        user_agent=settings.user_agent,
        timezone=settings.timezone,
        timeout=settings.request_timeout,
    )
    color = _use_color(sys.stdout)
    try:
        print(f"TODO {_paint(f'({github.login})', _GRAY_ITALIC, color)}")
        return _run_action(action, args, github=github, settings=settings, color=color)
    except (RequestFailed, NotFound, GithubException, requests.RequestException) as e:
        logger.error("Todo command failed", extra={"action": action, "error": str(e)})
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        github.close()


if __name__ == "__main__":
    raise SystemExit(main())
