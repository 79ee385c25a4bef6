"""
gitpair CLI - paired GitHub and local repository provisioning

Commands:
1. create: create a GitHub repository and clone it under the root
2. clone: clone an existing GitHub repository under the root
3. delete: delete the GitHub repository and its local working copy
4. whoami: show the user the token authenticates as
"""

import asyncio
from pathlib import Path
from typing import Optional

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from gitpair.config import GitPairSettings, get_settings, redact_secret
from gitpair.git.clone import CloneCredentials, CloneExecutor, GitCloneError
from gitpair.github.client import GitHubAPIError, GitHubClient
from gitpair.logging_config import configure_logging
from gitpair.paths import InvalidRepositoryNameError, resolve_local_path, validate_repo_name
from gitpair.provisioner.lock import LockTimeoutError
from gitpair.provisioner.models import ProvisionIntent, ProvisioningError
from gitpair.provisioner.orchestrator import RepositoryProvisioner

logger = structlog.get_logger()

app = typer.Typer(
    name="gitpair",
    help="Create or delete a GitHub repository together with its local clone",
    add_completion=False,
)

console = Console()

# Failures reported as a one-line message; anything else keeps its traceback
REPORTED_ERRORS = (
    InvalidRepositoryNameError,
    ProvisioningError,
    GitHubAPIError,
    GitCloneError,
    LockTimeoutError,
)

TOKEN_OPTION = typer.Option(
    "",
    "--token",
    "-t",
    help="GitHub token (default: GITPAIR_GITHUB_TOKEN)",
)
ROOT_OPTION = typer.Option(
    None,
    "--root",
    "-r",
    help="Directory holding working copies (default: ./repos)",
)
REPO_ARGUMENT = typer.Argument(..., help="name of repo")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
    lock: Optional[bool] = typer.Option(
        None,
        "--lock/--no-lock",
        help="Hold a lock file while working on a repository (default: GITPAIR_LOCK_ENABLED)",
    ),
):
    """Create or delete a GitHub repository together with its local clone."""
    try:
        settings = get_settings()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(2)

    if lock is not None:
        settings = settings.model_copy(update={"lock_enabled": lock})

    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_output=json_logs or settings.log_json,
    )
    logger.debug(
        "Configuration loaded",
        github_base_url=settings.github_base_url,
        github_token=redact_secret(settings.github_token),
        root=settings.root,
        lock_enabled=settings.lock_enabled,
        clone_verify_ssl=settings.clone_verify_ssl,
    )
    ctx.obj = settings


@app.command()
def create(
    ctx: typer.Context,
    repo: str = REPO_ARGUMENT,
    token: str = TOKEN_OPTION,
    root: Optional[str] = ROOT_OPTION,
):
    """create a repository"""
    result = _run(ctx.obj, ProvisionIntent.CREATE, repo, token, root)
    console.print(
        f"[green]Created[/green] {escape(result.repository.full_name)} "
        f"({escape(result.repository.html_url or result.repository.url)})"
    )
    console.print(f"[green]Cloned into[/green] {escape(str(result.working_copy.path))}")


@app.command()
def clone(
    ctx: typer.Context,
    repo: str = REPO_ARGUMENT,
    token: str = TOKEN_OPTION,
    root: Optional[str] = ROOT_OPTION,
):
    """clone an existing repository"""
    result = _run(ctx.obj, ProvisionIntent.CLONE, repo, token, root)
    console.print(
        f"[green]Cloned[/green] {escape(result.repository.full_name)} "
        f"into {escape(str(result.working_copy.path))}"
    )


@app.command()
def delete(
    ctx: typer.Context,
    repo: str = REPO_ARGUMENT,
    token: str = TOKEN_OPTION,
    root: Optional[str] = ROOT_OPTION,
):
    """delete a repository"""
    result = _run(ctx.obj, ProvisionIntent.DELETE, repo, token, root)
    if result.remote_deleted:
        console.print(f"[green]Deleted remote repository[/green] {escape(result.full_name)}")
    if result.local_deleted:
        console.print(f"[green]Deleted local path[/green] {escape(str(result.local_path))}")
    if not (result.remote_deleted or result.local_deleted):
        console.print(f"[yellow]Nothing to delete for[/yellow] {escape(repo)}")


@app.command()
def whoami(
    ctx: typer.Context,
    token: str = TOKEN_OPTION,
):
    """show the authenticated GitHub user"""
    settings: GitPairSettings = ctx.obj
    login = _guarded(_current_login(settings, token or settings.github_token))
    console.print(login)


def _run(
    settings: GitPairSettings,
    intent: ProvisionIntent,
    repo: str,
    token: str,
    root: Optional[str],
):
    return _guarded(
        _execute(
            settings=settings,
            intent=intent,
            repo=repo,
            token=token or settings.github_token,
            root=Path(root) if root else Path(settings.root),
        )
    )


def _guarded(coro):
    """Run ``coro`` and turn reported failures into a non-zero exit."""
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)
    except REPORTED_ERRORS as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _build_github_client(settings: GitPairSettings, token: str) -> GitHubClient:
    return GitHubClient(
        token=token,
        base_url=settings.github_base_url,
        timeout=settings.request_timeout_seconds,
    )


def _build_provisioner(
    settings: GitPairSettings,
    github: GitHubClient,
    token: str,
) -> RepositoryProvisioner:
    """Wire the provisioner's dependencies from settings."""
    cloner = CloneExecutor(
        timeout_seconds=settings.clone_timeout_seconds,
        verify_ssl=settings.clone_verify_ssl,
    )
    return RepositoryProvisioner(
        github=github,
        cloner=cloner,
        credentials=CloneCredentials.for_github_token(token),
        lock_timeout=settings.lock_timeout_seconds if settings.lock_enabled else None,
    )


async def _current_login(settings: GitPairSettings, token: str) -> str:
    async with _build_github_client(settings, token) as github:
        user = await github.get_current_user()
    return user.login


async def _execute(
    settings: GitPairSettings,
    intent: ProvisionIntent,
    repo: str,
    token: str,
    root: Path,
):
    """Validate input, resolve the owner and run the flow for ``intent``.

    Returns:
        ProvisionResult for create and clone, RemovalResult for delete.
    """
    name = validate_repo_name(repo)
    local_path = resolve_local_path(root, name)

    async with _build_github_client(settings, token) as github:
        user = await github.get_current_user()
        provisioner = _build_provisioner(settings, github, token)

        if intent is ProvisionIntent.CREATE:
            return await provisioner.provision_new(user.login, name, local_path)
        if intent is ProvisionIntent.CLONE:
            return await provisioner.provision_existing(user.login, name, local_path)
        return await provisioner.remove(user.login, name, local_path)
