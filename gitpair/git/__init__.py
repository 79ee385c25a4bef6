"""Local git operations: cloning a remote into a working copy."""

from gitpair.git.clone import (
    CloneCredentials,
    CloneExecutor,
    GitCloneError,
    WorkingCopy,
)

__all__ = ["CloneCredentials", "CloneExecutor", "GitCloneError", "WorkingCopy"]
