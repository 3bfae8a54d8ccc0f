"""Configuration for the todo CLI.

Configuration is loaded once at startup from:
- environment variables
- and a local `.env` file (if present)

The token uses a dedicated variable (`TODO_GITHUB_TOKEN`) so it does not
collide with other tools that read `GITHUB_TOKEN`.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TodoSettings(BaseSettings):
    """Settings for the todo CLI.

    Environment variables:
    - TODO_GITHUB_TOKEN
    - TODO_REPOSITORY       ("repo" or "owner/repo")
    - TODO_PROJECT_NUMBER   (optional)
    - TODO_COLUMN_NAME      (optional)
    - TODO_USER_AGENT       (optional)
    - TODO_TIMEZONE         (optional)
    - TODO_REQUEST_TIMEOUT  (optional)
    - GITHUB_BASE_URL       (optional)
    - LOG_LEVEL             (optional)

    Notes:
        Tests can point at a specific env file via
        `TodoSettings(_env_file=path_to_env)`.
    """

    # Defaults are empty so `TodoSettings()` type-checks; the validator below
    # enforces that real values are provided.
    token: str = Field(
        default="",
        validation_alias="TODO_GITHUB_TOKEN",
        description="GitHub personal access token",
    )
    repository: str = Field(
        default="",
        validation_alias="TODO_REPOSITORY",
        description="Repository holding the todos: 'repo' (owned by the token user) or 'owner/repo'",
    )
    project_number: int = Field(
        default=1,
        gt=0,
        validation_alias="TODO_PROJECT_NUMBER",
        description="Project number as in https://github.com/<owner>/<repo>/projects/<number>",
    )
    column_name: str = Field(
        default="Todo",
        validation_alias="TODO_COLUMN_NAME",
        description="Title of the project column where new todos are dropped",
    )
    user_agent: str = Field(
        default="todo/v0.1.0",
        validation_alias="TODO_USER_AGENT",
        description="User-Agent header sent with every request",
    )
    timezone: str = Field(
        default="UTC",
        validation_alias="TODO_TIMEZONE",
        description="Time-Zone header sent with every request",
    )
    base_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias="TODO_REQUEST_TIMEOUT",
        description="Timeout in seconds for each HTTP request",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _require_github_target(self) -> TodoSettings:
        if not self.token.strip():
            raise ValueError("TODO_GITHUB_TOKEN is required")
        repository = self.repository.strip().strip("/")
        if not repository:
            raise ValueError("TODO_REPOSITORY is required")
        if repository.count("/") > 1:
            raise ValueError("TODO_REPOSITORY must be 'repo' or 'owner/repo'")
        return self
