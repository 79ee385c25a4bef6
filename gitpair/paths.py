"""Local path resolution and repository name validation."""

import re
from pathlib import Path
from typing import Union

MAX_REPO_NAME_LENGTH = 100

_REPO_NAME_PATTERN = re.compile(r"[A-Za-z0-9._-]+")


class InvalidRepositoryNameError(ValueError):
    """Raised when a repository name cannot be used as a GitHub name or a directory."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid repository name {name!r}: {reason}")


def validate_repo_name(name: str) -> str:
    """Validate a repository name before it reaches the filesystem or the API.

    GitHub accepts ASCII letters, digits, ``.``, ``-`` and ``_``. On top of
    that, ``.`` and ``..`` are rejected since they would resolve to the root
    itself or its parent.

    Args:
        name: Repository name supplied by the caller.

    Returns:
        The name, unchanged.

    Raises:
        InvalidRepositoryNameError: If the name is empty, too long, contains
            characters outside the allowed set, is a relative path component,
            or ends in ``.git``.
    """
    if not name:
        raise InvalidRepositoryNameError(name, "name cannot be empty")
    if len(name) > MAX_REPO_NAME_LENGTH:
        raise InvalidRepositoryNameError(
            name, f"name cannot exceed {MAX_REPO_NAME_LENGTH} characters"
        )
    if name in (".", ".."):
        raise InvalidRepositoryNameError(name, "name cannot be a relative path component")
    if not _REPO_NAME_PATTERN.fullmatch(name):
        raise InvalidRepositoryNameError(
            name, "only letters, digits, '.', '-' and '_' are allowed"
        )
    if name.lower().endswith(".git"):
        raise InvalidRepositoryNameError(name, "name cannot end with '.git'")
    return name


def resolve_local_path(root: Union[str, Path], repo_name: str) -> Path:
    """Map a root directory and repository name to the working copy path.

    Pure join: no filesystem access and no validation.
    """
    return Path(root) / repo_name
