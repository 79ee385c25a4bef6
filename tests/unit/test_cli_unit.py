"""Tests for the gitpair command line interface.

The GitHub client factory is patched to serve FakeGitHub and the clone
executor is replaced by FakeCloner.
"""

import logging
import os

import pytest
import structlog
from typer.testing import CliRunner

from gitpair import cli

TOKEN = "ghp_testtoken123"

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("GITPAIR_"):
            monkeypatch.delenv(name)
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def wired(monkeypatch, fake_github, fake_cloner):
    """Route the CLI to the fakes and record how the cloner was built."""
    cloner_kwargs = {}

    def build_cloner(**kwargs):
        cloner_kwargs.update(kwargs)
        return fake_cloner

    monkeypatch.setattr(
        cli, "_build_github_client", lambda settings, token: fake_github.client(token)
    )
    monkeypatch.setattr(cli, "CloneExecutor", build_cloner)
    return fake_github, fake_cloner, cloner_kwargs


def invoke(*args):
    return runner.invoke(cli.app, list(args))


class TestCreate:

    def test_creates_and_clones(self, wired, repos_root):
        fake_github, fake_cloner, cloner_kwargs = wired

        result = invoke("create", "demo", "-t", TOKEN, "-r", str(repos_root))

        assert result.exit_code == 0, result.output
        assert "Created" in result.output
        assert "octocat/demo" in result.output
        assert (repos_root / "demo" / ".git").is_dir()
        assert "demo" in fake_github.repos
        assert cloner_kwargs["verify_ssl"] is False

    def test_existing_local_path_exits_1(self, wired, repos_root):
        fake_github, _, _ = wired
        (repos_root / "demo").mkdir(parents=True)

        result = invoke("create", "demo", "--token", TOKEN, "--root", str(repos_root))

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "already exists" in result.output
        assert fake_github.mutating_calls() == []

    def test_invalid_name_exits_1_without_api_calls(self, wired, repos_root):
        fake_github, _, _ = wired

        result = invoke("create", "..", "-t", TOKEN, "-r", str(repos_root))

        assert result.exit_code == 1
        assert "Invalid repository name" in result.output
        assert fake_github.calls == []

    def test_bad_token_exits_1(self, wired, repos_root):
        result = invoke("create", "demo", "-t", "ghp_wrong", "-r", str(repos_root))

        assert result.exit_code == 1
        assert "Bad credentials" in result.output
        assert not repos_root.exists()

    def test_token_from_environment(self, wired, repos_root, monkeypatch):
        monkeypatch.setenv("GITPAIR_GITHUB_TOKEN", TOKEN)

        result = invoke("create", "demo", "-r", str(repos_root))

        assert result.exit_code == 0, result.output

    def test_root_from_environment(self, wired, repos_root, monkeypatch):
        monkeypatch.setenv("GITPAIR_ROOT", str(repos_root))

        result = invoke("create", "demo", "-t", TOKEN)

        assert result.exit_code == 0, result.output
        assert (repos_root / "demo").is_dir()


class TestClone:

    def test_clones_existing(self, wired, repos_root):
        fake_github, fake_cloner, _ = wired
        fake_github.add_repo("demo")

        result = invoke("clone", "demo", "-t", TOKEN, "-r", str(repos_root))

        assert result.exit_code == 0, result.output
        assert "Cloned" in result.output
        assert fake_github.mutating_calls() == []
        assert len(fake_cloner.calls) == 1

    def test_missing_remote_exits_1(self, wired, repos_root):
        result = invoke("clone", "demo", "-t", TOKEN, "-r", str(repos_root))

        assert result.exit_code == 1
        assert "not found" in result.output


class TestDelete:

    def test_deletes_both(self, wired, repos_root):
        fake_github, _, _ = wired
        fake_github.add_repo("demo")
        (repos_root / "demo").mkdir(parents=True)

        result = invoke("delete", "demo", "-t", TOKEN, "-r", str(repos_root))

        assert result.exit_code == 0, result.output
        assert "Deleted remote repository" in result.output
        assert "Deleted local path" in result.output
        assert not (repos_root / "demo").exists()
        assert fake_github.repos == {}

    def test_nothing_to_delete_succeeds(self, wired, repos_root):
        result = invoke("delete", "demo", "-t", TOKEN, "-r", str(repos_root))

        assert result.exit_code == 0, result.output
        assert "Nothing to delete" in result.output


class TestWhoami:

    def test_prints_login(self, wired):
        result = invoke("whoami", "-t", TOKEN)

        assert result.exit_code == 0, result.output
        assert "octocat" in result.output.splitlines()

    def test_bad_token_exits_1(self, wired):
        result = invoke("whoami", "-t", "nope")
        assert result.exit_code == 1

    def test_missing_token_reports_authentication_failure(self, wired):
        fake_github, _, _ = wired

        result = invoke("whoami")

        assert result.exit_code == 1
        assert "Bad credentials" in result.output
        assert fake_github.calls == [("GET", "/user")]


class TestGlobalOptions:

    def test_invalid_configuration_exits_2(self, wired, monkeypatch):
        monkeypatch.setenv("GITPAIR_CLONE_TIMEOUT_SECONDS", "0")

        result = invoke("whoami", "-t", TOKEN)

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_lock_flag_enables_locking(self, wired, repos_root, monkeypatch):
        fake_github, _, _ = wired
        monkeypatch.setenv("GITPAIR_LOCK_TIMEOUT_SECONDS", "0.3")
        repos_root.mkdir()
        (repos_root / ".demo.lock").write_text(str(os.getpid()))

        result = invoke("--lock", "create", "demo", "-t", TOKEN, "-r", str(repos_root))

        assert result.exit_code == 1
        assert "Could not acquire lock" in result.output
        assert fake_github.mutating_calls() == []

    def test_no_lock_overrides_environment(self, wired, repos_root, monkeypatch):
        monkeypatch.setenv("GITPAIR_LOCK_ENABLED", "true")
        monkeypatch.setenv("GITPAIR_LOCK_TIMEOUT_SECONDS", "0.3")
        repos_root.mkdir()
        (repos_root / ".demo.lock").write_text(str(os.getpid()))

        result = invoke("--no-lock", "create", "demo", "-t", TOKEN, "-r", str(repos_root))

        assert result.exit_code == 0, result.output

    def test_verbose_logging_still_succeeds(self, wired):
        result = invoke("--verbose", "--json-logs", "whoami", "-t", TOKEN)
        assert result.exit_code == 0, result.output
