"""GitHub Todo.

A dumb todo list on top of GitHub:
- configuration loaded from `.env`
- structured logging
- todos as issues, placed on a classic project board column
"""

__version__ = "0.1.0"

from github_todo.config import TodoSettings

__all__ = ["__version__", "TodoSettings"]
