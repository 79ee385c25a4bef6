"""GitHub REST API access for repository provisioning."""

from gitpair.github.client import (
    AuthenticationError,
    GitHubAPIError,
    GitHubClient,
    RateLimitError,
)
from gitpair.github.models import GitHubUser, RemoteRepository

__all__ = [
    "AuthenticationError",
    "GitHubAPIError",
    "GitHubClient",
    "GitHubUser",
    "RateLimitError",
    "RemoteRepository",
]
