"""git clone execution with token credentials.

Clones a remote repository into a local path by running ``git clone``
as an asyncio subprocess. Credentials are passed to git as a one-shot
``http.extraHeader`` configuration value, so the token is used for this
clone only and is never written into the clone's ``.git/config``.
"""

import asyncio
import base64
import contextlib
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

import structlog

logger = structlog.get_logger()

CLONE_TIMEOUT_SECONDS = 300

# GitHub accepts a token as the username of an HTTPS clone when paired
# with this fixed password.
GITHUB_TOKEN_PASSWORD = "x-oauth-basic"


@dataclass(frozen=True)
class CloneCredentials:
    """HTTP basic credentials for an HTTPS clone.

    Attributes:
        username: Username sent to the git server.
        password: Password sent to the git server.
    """

    username: str
    password: str = field(repr=False)

    @classmethod
    def for_github_token(cls, token: str) -> "CloneCredentials":
        """Credentials for a GitHub token: the token with the sentinel password."""
        return cls(username=token, password=GITHUB_TOKEN_PASSWORD)

    def _basic_token(self) -> str:
        raw = f"{self.username}:{self.password}".encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    def authorization_header(self) -> str:
        """Render the credentials as an HTTP ``Authorization`` header."""
        return f"Authorization: Basic {self._basic_token()}"

    def scrub(self, text: str) -> str:
        """Remove the secret parts of these credentials from ``text``."""
        for secret in (self.username, self._basic_token()):
            if secret:
                text = text.replace(secret, "***")
        return text


@dataclass
class WorkingCopy:
    """Handle on a cloned working copy.

    Attributes:
        path: Local directory containing the clone.
        remote_url: URL the clone was made from.
        cloned_at: When the clone finished (UTC).
    """

    path: Path
    remote_url: str
    cloned_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def git_dir(self) -> Path:
        return self.path / ".git"


class GitCloneError(Exception):
    """Raised when a Git clone operation fails."""

    def __init__(self, remote_url: str, message: str):
        self.remote_url = remote_url
        super().__init__(f"Failed to clone {remote_url}: {message}")


class CloneExecutor:
    """Runs ``git clone`` for the provisioner.

    Attributes:
        timeout_seconds: Maximum time a clone may take.
        verify_ssl: Whether git verifies the server certificate.
        git_executable: Name or path of the git binary.
    """

    def __init__(
        self,
        timeout_seconds: int = CLONE_TIMEOUT_SECONDS,
        verify_ssl: bool = False,
        git_executable: str = "git",
    ):
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self.git_executable = git_executable

    def build_command(
        self,
        credentials: CloneCredentials,
        remote_url: str,
        local_path: Path,
    ) -> List[str]:
        """Build the git argument vector for a clone.

        ``-c`` options placed before the ``clone`` subcommand apply to this
        invocation only and are not persisted in the new repository.
        """
        return [
            self.git_executable,
            "-c",
            f"http.sslVerify={'true' if self.verify_ssl else 'false'}",
            "-c",
            f"http.extraHeader={credentials.authorization_header()}",
            "clone",
            remote_url,
            str(local_path),
        ]

    def build_env(self) -> Dict[str, str]:
        """Environment for git: inherited, with credential prompts disabled."""
        return {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

    async def clone(
        self,
        credentials: CloneCredentials,
        remote_url: str,
        local_path: Path,
    ) -> WorkingCopy:
        """Clone ``remote_url`` into ``local_path``.

        Args:
            credentials: Credentials for the HTTPS remote.
            remote_url: Clone URL of the remote repository.
            local_path: Target directory; must be absent or empty.

        Returns:
            WorkingCopy handle for the new clone.

        Raises:
            GitCloneError: If git exits non-zero, times out, or cannot be run.
        """
        logger.info("Cloning repository", url=remote_url, path=str(local_path))

        command = self.build_command(credentials, remote_url, local_path)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.build_env(),
            )

            _, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            raise GitCloneError(
                remote_url,
                f"Clone timed out after {self.timeout_seconds}s",
            ) from exc
        except OSError as exc:
            raise GitCloneError(
                remote_url, f"Failed to execute git: {exc}"
            ) from exc

        if process.returncode != 0:
            error_output = credentials.scrub(stderr.decode(errors="replace").strip())
            raise GitCloneError(remote_url, error_output)

        logger.info("Cloned repository", url=remote_url, path=str(local_path))
        return WorkingCopy(path=local_path, remote_url=remote_url)
