"""Provisioning reconciliation models.

This module defines the data models for reconciling local and remote
repository state, including:
- ProvisionIntent: What the caller asked for (create, clone, delete)
- Decision: The action taken for a given intent and observed state
- RepositoryProbe: Snapshot of local and remote existence
- DECISION_TABLE: Map from (intent, local exists, remote exists) to Decision
- ProvisionResult / RemovalResult: Outcome records
- ProvisioningError and its subclasses
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

from gitpair.git.clone import WorkingCopy
from gitpair.github.models import RemoteRepository


class ProvisionIntent(str, Enum):
    """Operation requested by the caller.

    Attributes:
        CREATE: Create the remote, then clone it.
        CLONE: Clone an existing remote.
        DELETE: Delete the remote and the local working copy.
    """

    CREATE = "create"
    CLONE = "clone"
    DELETE = "delete"


class Decision(str, Enum):
    """Action chosen by reconciliation before any side effect happens."""

    CREATE_AND_CLONE = "create_and_clone"
    CLONE = "clone"
    DELETE_BOTH = "delete_both"
    DELETE_REMOTE = "delete_remote"
    DELETE_LOCAL = "delete_local"
    NOTHING = "nothing"
    FAIL_LOCAL_CONFLICT = "fail_local_conflict"
    FAIL_REMOTE_EXISTS = "fail_remote_exists"
    FAIL_REMOTE_MISSING = "fail_remote_missing"

    @property
    def is_failure(self) -> bool:
        return self.value.startswith("fail_")


# (intent, local exists, remote exists) -> decision
DECISION_TABLE: Dict[Tuple[ProvisionIntent, bool, bool], Decision] = {
    (ProvisionIntent.CREATE, True, True): Decision.FAIL_LOCAL_CONFLICT,
    (ProvisionIntent.CREATE, True, False): Decision.FAIL_LOCAL_CONFLICT,
    (ProvisionIntent.CREATE, False, True): Decision.FAIL_REMOTE_EXISTS,
    (ProvisionIntent.CREATE, False, False): Decision.CREATE_AND_CLONE,
    (ProvisionIntent.CLONE, True, True): Decision.FAIL_LOCAL_CONFLICT,
    (ProvisionIntent.CLONE, True, False): Decision.FAIL_LOCAL_CONFLICT,
    (ProvisionIntent.CLONE, False, True): Decision.CLONE,
    (ProvisionIntent.CLONE, False, False): Decision.FAIL_REMOTE_MISSING,
    (ProvisionIntent.DELETE, True, True): Decision.DELETE_BOTH,
    (ProvisionIntent.DELETE, False, True): Decision.DELETE_REMOTE,
    (ProvisionIntent.DELETE, True, False): Decision.DELETE_LOCAL,
    (ProvisionIntent.DELETE, False, False): Decision.NOTHING,
}


@dataclass(frozen=True)
class RepositoryProbe:
    """Existence of both sides of a repository pair at one point in time.

    Attributes:
        owner: Owner login of the remote repository.
        name: Repository name.
        local_path: Resolved working copy path.
        local_exists: Whether ``local_path`` existed when probed.
        remote: The remote repository, or None if GitHub reported 404.
    """

    owner: str
    name: str
    local_path: Path
    local_exists: bool
    remote: Optional[RemoteRepository]

    @property
    def remote_exists(self) -> bool:
        return self.remote is not None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def decide(intent: ProvisionIntent, probe: RepositoryProbe) -> Decision:
    """Look up the action for ``intent`` given the probed state."""
    return DECISION_TABLE[(intent, probe.local_exists, probe.remote_exists)]


@dataclass
class ProvisionResult:
    """Outcome of a create or clone flow.

    Attributes:
        repository: The remote repository that was cloned.
        working_copy: Handle on the new local clone.
        created: Whether the remote was created by this invocation.
    """

    repository: RemoteRepository
    working_copy: WorkingCopy
    created: bool = False


@dataclass
class RemovalResult:
    """Outcome of a remove flow.

    Attributes:
        decision: What reconciliation decided to remove.
        full_name: ``owner/name`` of the remote repository.
        local_path: Working copy path.
        remote_deleted: Whether a remote repository was deleted.
        local_deleted: Whether a local directory was deleted.
    """

    decision: Decision
    full_name: str
    local_path: Path
    remote_deleted: bool = False
    local_deleted: bool = False


class ProvisioningError(Exception):
    """Base class for provisioning failures caused by conflicting state."""


class LocalPathConflictError(ProvisioningError):
    """Raised when the target working copy directory already exists."""

    def __init__(self, local_path: Path):
        self.local_path = local_path
        super().__init__(f"Local path already exists: {local_path}")


class RemoteAlreadyExistsError(ProvisioningError):
    """Raised when creating a remote repository that already exists."""

    def __init__(self, full_name: str):
        self.full_name = full_name
        super().__init__(f"Repository {full_name} already exists")


class RemoteNotFoundError(ProvisioningError):
    """Raised when cloning a remote repository that does not exist."""

    def __init__(self, full_name: str):
        self.full_name = full_name
        super().__init__(f"Repository {full_name} not found")


class LocalRemovalError(ProvisioningError):
    """Raised when the local working copy cannot be deleted."""

    def __init__(self, local_path: Path, reason: str):
        self.local_path = local_path
        self.reason = reason
        super().__init__(f"Failed to delete {local_path}: {reason}")


class PartialRemovalError(LocalRemovalError):
    """Raised when the remote was deleted but the local working copy was not.

    The remote deletion is not undone.
    """

    def __init__(self, full_name: str, local_path: Path, reason: str):
        super().__init__(local_path, reason)
        self.full_name = full_name
        self.args = (
            f"Remote repository {full_name} was deleted, "
            f"but deleting {local_path} failed: {reason}",
        )
