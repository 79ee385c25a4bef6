"""Provisioning orchestrator for paired remote and local repositories.

Composes the GitHub client and the clone executor into three flows:
- provision_new: create the remote if absent, then clone it
- provision_existing: clone a remote that already exists
- remove: delete the remote if present, then the local working copy

Each flow probes local and remote existence first, looks the result up
in DECISION_TABLE, and only then performs side effects. A failed step
aborts the flow; completed steps are not rolled back.

The probes are not atomic with the actions that follow them. Two runs on
the same repository name can both pass the guards unless a lock timeout
is configured, in which case each flow holds a PathLock.
"""

import contextlib
import shutil
from pathlib import Path
from typing import Optional, Tuple

import structlog

from gitpair.git.clone import CloneCredentials, CloneExecutor
from gitpair.github.client import GitHubClient
from gitpair.provisioner.lock import PathLock, lock_path_for
from gitpair.provisioner.models import (
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

logger = structlog.get_logger()


def _path_exists(path: Path) -> bool:
    """True for existing paths, including dangling symlinks."""
    return path.exists() or path.is_symlink()


class RepositoryProvisioner:
    """Creates, clones and removes repository pairs.

    Attributes:
        github: Authenticated GitHub API client.
        cloner: Executor running git clone.
        credentials: Credentials handed to git for the clone.
        lock_timeout: Seconds to wait for the path lock; None disables locking.
    """

    def __init__(
        self,
        github: GitHubClient,
        cloner: CloneExecutor,
        credentials: CloneCredentials,
        lock_timeout: Optional[float] = None,
    ):
        self.github = github
        self.cloner = cloner
        self.credentials = credentials
        self.lock_timeout = lock_timeout

    def _lock(self, local_path: Path):
        if self.lock_timeout is None:
            return contextlib.nullcontext()
        return PathLock(lock_path_for(local_path), timeout=self.lock_timeout)

    async def probe(
        self,
        owner: str,
        name: str,
        local_path: Path,
        check_remote: bool = True,
    ) -> RepositoryProbe:
        """Observe local and remote existence.

        The local path is stat'ed first. When ``check_remote`` is False the
        remote is not looked up and reported as absent.

        Args:
            owner: Owner login of the remote repository.
            name: Repository name.
            local_path: Resolved working copy path.
            check_remote: Whether to query GitHub.

        Returns:
            RepositoryProbe snapshot.

        Raises:
            GitHubAPIError: If the lookup fails for a reason other than 404.
        """
        local_exists = _path_exists(local_path)
        remote = None
        if check_remote:
            remote = await self.github.get_repository(owner, name)

        return RepositoryProbe(
            owner=owner,
            name=name,
            local_path=local_path,
            local_exists=local_exists,
            remote=remote,
        )

    async def reconcile(
        self,
        intent: ProvisionIntent,
        owner: str,
        name: str,
        local_path: Path,
    ) -> Tuple[RepositoryProbe, Decision]:
        """Probe state and decide what ``intent`` should do, without side effects.

        For create and clone, an existing local path decides the outcome on
        its own, so GitHub is not queried in that case.

        Raises:
            LocalPathConflictError: If the local path blocks a create or clone.
            RemoteAlreadyExistsError: If a create finds the remote present.
            RemoteNotFoundError: If a clone finds the remote absent.
        """
        check_remote = True
        if intent is not ProvisionIntent.DELETE:
            check_remote = not _path_exists(local_path)

        probe = await self.probe(owner, name, local_path, check_remote=check_remote)
        decision = decide(intent, probe)

        logger.debug(
            "Reconciled repository state",
            intent=intent.value,
            repo=probe.full_name,
            path=str(local_path),
            local_exists=probe.local_exists,
            remote_exists=probe.remote_exists,
            remote_checked=check_remote,
            decision=decision.value,
        )

        if decision is Decision.FAIL_LOCAL_CONFLICT:
            raise LocalPathConflictError(local_path)
        if decision is Decision.FAIL_REMOTE_EXISTS:
            raise RemoteAlreadyExistsError(probe.full_name)
        if decision is Decision.FAIL_REMOTE_MISSING:
            raise RemoteNotFoundError(probe.full_name)

        return probe, decision

    async def provision_new(
        self,
        owner: str,
        name: str,
        local_path: Path,
    ) -> ProvisionResult:
        """Create the remote repository and clone it into ``local_path``.

        Args:
            owner: Authenticated user's login.
            name: Repository name.
            local_path: Target working copy path; must not exist.

        Returns:
            ProvisionResult with ``created=True``.

        Raises:
            LocalPathConflictError: If ``local_path`` exists. GitHub is not touched.
            RemoteAlreadyExistsError: If the remote exists. Nothing is changed.
            GitHubAPIError: If creation or lookup fails.
            GitCloneError: If the clone fails; the created remote is kept.
        """
        async with self._lock(local_path):
            await self.reconcile(ProvisionIntent.CREATE, owner, name, local_path)

            await self.github.create_repository(name)

            result = await self._clone_existing(owner, name, local_path)
            result.created = True

        logger.info("Provisioned repository", repo=f"{owner}/{name}", path=str(local_path))
        return result

    async def provision_existing(
        self,
        owner: str,
        name: str,
        local_path: Path,
    ) -> ProvisionResult:
        """Clone an existing remote repository into ``local_path``.

        Raises:
            LocalPathConflictError: If ``local_path`` exists.
            RemoteNotFoundError: If the remote does not exist.
            GitCloneError: If the clone fails.
        """
        async with self._lock(local_path):
            result = await self._clone_existing(owner, name, local_path)

        logger.info("Provisioned repository", repo=f"{owner}/{name}", path=str(local_path))
        return result

    async def _clone_existing(
        self,
        owner: str,
        name: str,
        local_path: Path,
    ) -> ProvisionResult:
        probe, _ = await self.reconcile(ProvisionIntent.CLONE, owner, name, local_path)

        self._ensure_parent_directory(local_path)
        working_copy = await self.cloner.clone(
            self.credentials,
            probe.remote.clone_url,
            local_path,
        )
        return ProvisionResult(repository=probe.remote, working_copy=working_copy)

    def _ensure_parent_directory(self, local_path: Path) -> None:
        """Create the parent of ``local_path`` and any missing ancestors.

        Raises:
            ProvisioningError: If directory creation fails.
        """
        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProvisioningError(
                f"Failed to create directory {local_path.parent}: {exc}"
            ) from exc

    async def remove(
        self,
        owner: str,
        name: str,
        local_path: Path,
    ) -> RemovalResult:
        """Delete the remote repository and the local working copy.

        Either side being absent is not an error, so removing twice
        succeeds.

        Args:
            owner: Authenticated user's login.
            name: Repository name.
            local_path: Working copy path.

        Returns:
            RemovalResult describing what was deleted.

        Raises:
            GitHubAPIError: If the remote lookup or deletion fails; the local
                copy is left untouched.
            PartialRemovalError: If the remote was deleted but the local copy
                could not be.
            LocalRemovalError: If only the local copy was to be deleted and
                that failed.
        """
        async with self._lock(local_path):
            probe, decision = await self.reconcile(
                ProvisionIntent.DELETE, owner, name, local_path
            )
            result = RemovalResult(
                decision=decision,
                full_name=probe.full_name,
                local_path=local_path,
            )

            if probe.remote_exists:
                await self.github.delete_repository(owner, name)
                result.remote_deleted = True

            if probe.local_exists:
                logger.info("Deleting local path", path=str(local_path))
                try:
                    self._remove_local(local_path)
                except OSError as exc:
                    if result.remote_deleted:
                        raise PartialRemovalError(
                            probe.full_name, local_path, str(exc)
                        ) from exc
                    raise LocalRemovalError(local_path, str(exc)) from exc
                result.local_deleted = True
                logger.info("Deleted local path", path=str(local_path))

        logger.info(
            "Removal complete",
            repo=probe.full_name,
            decision=decision.value,
        )
        return result

    def _remove_local(self, local_path: Path) -> None:
        if local_path.is_dir() and not local_path.is_symlink():
            shutil.rmtree(local_path)
        else:
            local_path.unlink()
