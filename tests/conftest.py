"""Pytest configuration and shared fakes for all tests.

FakeGitHub is an in-memory stand-in for the GitHub REST API, served to
GitHubClient through httpx.MockTransport. FakeCloner replaces the git
subprocess with a directory that looks like a fresh clone.
"""

import json
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from gitpair.git.clone import CloneCredentials, WorkingCopy
from gitpair.github.client import GitHubClient

TEST_TOKEN = "ghp_testtoken123"
TEST_LOGIN = "octocat"

_REPO_PATH = re.compile(r"/repos/([^/]+)/([^/]+)")


class FakeGitHub:
    """In-memory GitHub serving /user, /user/repos and /repos/{owner}/{name}."""

    def __init__(self, login: str = TEST_LOGIN, token: str = TEST_TOKEN):
        self.login = login
        self.token = token
        self.repos: Dict[str, dict] = {}
        self.calls: List[Tuple[str, str]] = []
        self.create_bodies: List[dict] = []
        self.overrides: Dict[Tuple[str, str], httpx.Response] = {}

    def repo_payload(self, name: str) -> dict:
        full_name = f"{self.login}/{name}"
        return {
            "id": len(self.repos) + 1,
            "name": name,
            "full_name": full_name,
            "url": f"https://api.github.com/repos/{full_name}",
            "html_url": f"https://github.com/{full_name}",
            "clone_url": f"https://github.com/{full_name}.git",
            "private": False,
            "default_branch": "main",
        }

    def add_repo(self, name: str) -> dict:
        self.repos[name] = self.repo_payload(name)
        return self.repos[name]

    def mutating_calls(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("POST", "DELETE")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.calls.append((method, path))

        if (method, path) in self.overrides:
            return self.overrides[(method, path)]

        if request.headers.get("authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"message": "Bad credentials"})

        if method == "GET" and path == "/user":
            return httpx.Response(200, json={"login": self.login, "id": 1})

        if method == "POST" and path == "/user/repos":
            body = json.loads(request.content)
            self.create_bodies.append(body)
            if body["name"] in self.repos:
                return httpx.Response(
                    422, json={"message": "Repository creation failed."}
                )
            return httpx.Response(201, json=self.add_repo(body["name"]))

        match = _REPO_PATH.fullmatch(path)
        if match:
            owner, name = match.groups()
            if owner != self.login or name not in self.repos:
                return httpx.Response(404, json={"message": "Not Found"})
            if method == "GET":
                return httpx.Response(200, json=self.repos[name])
            if method == "DELETE":
                del self.repos[name]
                return httpx.Response(204)

        return httpx.Response(404, json={"message": "Not Found"})

    def client(self, token: Optional[str] = None) -> GitHubClient:
        return GitHubClient(
            token=self.token if token is None else token,
            transport=httpx.MockTransport(self.handler),
        )


class FakeCloner:
    """Records clone calls and creates a directory with a .git folder."""

    def __init__(self):
        self.calls: List[Tuple[CloneCredentials, str, Path]] = []

    async def clone(
        self,
        credentials: CloneCredentials,
        remote_url: str,
        local_path: Path,
    ) -> WorkingCopy:
        self.calls.append((credentials, remote_url, local_path))
        (local_path / ".git").mkdir(parents=True)
        (local_path / "README.md").write_text("# initial commit\n")
        return WorkingCopy(path=local_path, remote_url=remote_url)


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def fake_cloner():
    return FakeCloner()


@pytest.fixture
def repos_root(tmp_path):
    return tmp_path / "repos"


@pytest.fixture
def fresh_fakes():
    """Factory for independent (FakeGitHub, FakeCloner) pairs.

    Property tests call it once per example so state never leaks between
    examples.
    """
    return lambda: (FakeGitHub(), FakeCloner())
