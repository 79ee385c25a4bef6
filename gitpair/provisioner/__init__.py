"""Repository pair provisioning.

This module reconciles local and remote repository state into
create, clone and delete steps:
- models: intents, the decision table, results and errors
- lock: optional advisory lock per working copy path
- orchestrator: RepositoryProvisioner running the flows
"""

from gitpair.provisioner.lock import LockTimeoutError, PathLock
from gitpair.provisioner.models import (
    DECISION_TABLE,
    Decision,
    LocalPathConflictError,
    LocalRemovalError,
    PartialRemovalError,
    ProvisionIntent,
    ProvisionResult,
    ProvisioningError,
    RemoteAlreadyExistsError,
    RemoteNotFoundError,
    RemovalResult,
    RepositoryProbe,
    decide,
)
from gitpair.provisioner.orchestrator import RepositoryProvisioner

__all__ = [
    # Reconciliation
    "DECISION_TABLE",
    "Decision",
    "ProvisionIntent",
    "RepositoryProbe",
    "decide",
    # Results
    "ProvisionResult",
    "RemovalResult",
    # Errors
    "LocalPathConflictError",
    "LocalRemovalError",
    "LockTimeoutError",
    "PartialRemovalError",
    "ProvisioningError",
    "RemoteAlreadyExistsError",
    "RemoteNotFoundError",
    # Orchestration
    "PathLock",
    "RepositoryProvisioner",
]
