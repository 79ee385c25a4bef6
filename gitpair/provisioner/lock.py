"""Advisory lock serializing invocations on the same repository name.

The lock is a file created next to the working copy with
``O_CREAT | O_EXCL``. A lock left behind by a process that no longer
runs, or older than STALE_LOCK_SECONDS, is reclaimed.
"""

import asyncio
import os
import time
from pathlib import Path
from typing import Optional, Tuple

import structlog

logger = structlog.get_logger()

STALE_LOCK_SECONDS = 600
POLL_INTERVAL_SECONDS = 0.2


class LockTimeoutError(Exception):
    """Raised when a path lock cannot be acquired in time."""

    def __init__(self, lock_path: Path, timeout: float):
        self.lock_path = lock_path
        self.timeout = timeout
        super().__init__(
            f"Could not acquire lock {lock_path} within {timeout}s; "
            "another gitpair run may be working on this repository"
        )


def lock_path_for(local_path: Path) -> Path:
    """Lock file path for a working copy: ``<parent>/.<name>.lock``."""
    return local_path.parent / f".{local_path.name}.lock"


class PathLock:
    """Async context manager holding an exclusive lock file.

    Attributes:
        lock_path: Path of the lock file.
        timeout: Maximum seconds to wait for the lock.
    """

    def __init__(self, lock_path: Path, timeout: float = 30.0):
        self.lock_path = lock_path
        self.timeout = timeout
        self._acquired = False

    @property
    def is_locked(self) -> bool:
        return self._acquired

    def _try_acquire(self) -> bool:
        try:
            fd = os.open(
                self.lock_path,
                os.O_CREAT | os.O_EXCL | os.O_WRONLY,
                0o644,
            )
        except FileExistsError:
            return False

        with os.fdopen(fd, "w") as f:
            f.write(str(os.getpid()))
        return True

    def _stale_snapshot(self) -> Optional[Tuple[int, str]]:
        """Identify an abandoned lock file.

        Returns:
            ``(inode, content)`` of the lock file if it is stale, else None.
        """
        try:
            stat = self.lock_path.stat()
            content = self.lock_path.read_text().strip()
        except FileNotFoundError:
            return None

        snapshot = (stat.st_ino, content)
        if time.time() - stat.st_mtime > STALE_LOCK_SECONDS:
            return snapshot

        # Holder has created the file but not written its PID yet
        if not content:
            return None

        try:
            pid = int(content)
        except ValueError:
            return snapshot

        return None if _is_process_running(pid) else snapshot

    def _reclaim(self, snapshot: Tuple[int, str]) -> None:
        """Remove the stale lock file identified by ``snapshot``.

        The file is first renamed aside, so a lock created by another waiter
        after the staleness check is never deleted; such a file is moved back.
        """
        aside = self.lock_path.with_name(f"{self.lock_path.name}.{os.getpid()}.reclaim")
        try:
            os.rename(self.lock_path, aside)
        except FileNotFoundError:
            return

        try:
            taken = (aside.stat().st_ino, aside.read_text().strip())
            if taken != snapshot:
                logger.debug("Lock changed hands during reclaim", lock=str(self.lock_path))
                try:
                    os.link(aside, self.lock_path)
                except FileExistsError:
                    logger.warning("Could not restore lock", lock=str(self.lock_path))
                return
            logger.warning("Reclaimed stale lock", lock=str(self.lock_path))
        finally:
            aside.unlink(missing_ok=True)

    async def acquire(self) -> None:
        """Acquire the lock, waiting up to ``timeout`` seconds.

        Raises:
            LockTimeoutError: If the lock is still held after the timeout.
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.timeout

        while True:
            if self._try_acquire():
                self._acquired = True
                logger.debug("Acquired lock", lock=str(self.lock_path))
                return

            snapshot = self._stale_snapshot()
            if snapshot is not None:
                self._reclaim(snapshot)
                continue

            if time.monotonic() >= deadline:
                raise LockTimeoutError(self.lock_path, self.timeout)

            await asyncio.sleep(POLL_INTERVAL_SECONDS)

    def release(self) -> None:
        """Release the lock if held."""
        if not self._acquired:
            return
        self.lock_path.unlink(missing_ok=True)
        self._acquired = False
        logger.debug("Released lock", lock=str(self.lock_path))

    async def __aenter__(self) -> "PathLock":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


def _is_process_running(pid: int) -> bool:
    """Check if a process with the given PID exists (signal 0)."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True

