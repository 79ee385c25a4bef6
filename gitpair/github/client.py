"""GitHub API client for repository provisioning.

This module provides an async wrapper around the GitHub REST API for:
- Fetching the authenticated user
- Creating a repository (auto-initialized)
- Looking up a repository, with 404 reported as absence
- Deleting a repository

Every call is a single attempt. Rate limiting is detected and reported
through RateLimitError but never waited out.
"""

import time
from typing import Any, Dict, Optional

import httpx
import structlog

from gitpair.github.models import GitHubUser, RemoteRepository


logger = structlog.get_logger()


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response, None for
            network failures.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class AuthenticationError(GitHubAPIError):
    """Raised when GitHub rejects the token (HTTP 401)."""


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GitHubClient:
    """Async GitHub API client for user and repository operations.

    Supports both github.com and GitHub Enterprise Server through
    ``base_url``. The token is sent with every request.

    Attributes:
        token: GitHub API token (PAT or GitHub App token).
        base_url: Base URL for GitHub API (default: https://api.github.com).
        timeout: Request timeout in seconds.

    Example:
        >>> async with GitHubClient(token="ghp_xxx") as client:
        ...     user = await client.get_current_user()
        ...     repo = await client.get_repository(user.login, "demo")
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            base_url: Base URL for GitHub API. Use this to support
                      GitHub Enterprise Server endpoints.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        """Build default headers for GitHub API requests.

        Without a token the request goes out anonymously and GitHub answers
        with its own 401.
        """
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "gitpair/0.1",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(
        self,
        exc_type: Any,
        exc_val: Any,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _parse_int_header(
        self,
        headers: httpx.Headers,
        name: str,
    ) -> Optional[int]:
        """Parse an integer header value.

        Returns:
            Integer value or None if not present/invalid.
        """
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    def _is_rate_limited(self, response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code == 403:
            remaining = self._parse_int_header(
                response.headers,
                "x-ratelimit-remaining",
            )
            return remaining == 0
        return False

    def _rate_limit_error(self, response: httpx.Response) -> RateLimitError:
        """Build a RateLimitError from a rate-limited response.

        Args:
            response: The rate-limited response from GitHub.

        Returns:
            RateLimitError with information about when to retry.
        """
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            reset_at=reset_at,
            retry_after=retry_after,
        )

        return RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            response_body=response.text,
            request_url=str(response.url),
            reset_at=reset_at,
            retry_after=retry_after,
        )

    def _error_message(self, response: httpx.Response) -> str:
        """Extract GitHub's ``message`` field, falling back to the status code."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return f"GitHub API error {response.status_code}: {body['message']}"
        return f"GitHub API error: {response.status_code}"

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make a single HTTP request and map failures to exceptions.

        Args:
            method: HTTP method (GET, POST, DELETE).
            path: API path (e.g., /repos/owner/repo).
            json_data: Optional JSON body for the request.

        Returns:
            The successful HTTP response from GitHub.

        Raises:
            AuthenticationError: If the token is rejected.
            RateLimitError: If rate limit is exceeded.
            GitHubAPIError: For any other error status or network failure.
        """
        try:
            response = await self.client.request(
                method=method,
                url=path,
                json=json_data,
            )
        except httpx.RequestError as e:
            logger.error(
                "GitHub API request failed",
                method=method,
                path=path,
                error=str(e),
            )
            raise GitHubAPIError(
                message=f"Request to GitHub failed: {e}",
                request_url=f"{self.base_url}{path}",
            ) from e

        if self._is_rate_limited(response):
            raise self._rate_limit_error(response)

        if response.status_code >= 400:
            error_body = response.text
            # 404 is an expected probe result for get_repository
            log = logger.debug if response.status_code == 404 else logger.error
            log(
                "GitHub API error",
                status_code=response.status_code,
                path=path,
                method=method,
                response_body=error_body[:500],
            )
            error_class = (
                AuthenticationError
                if response.status_code == 401
                else GitHubAPIError
            )
            raise error_class(
                message=self._error_message(response),
                status_code=response.status_code,
                response_body=error_body,
                request_url=str(response.url),
            )

        return response

    async def get_current_user(self) -> GitHubUser:
        """Get the user the token authenticates as.

        Returns:
            GitHubUser with the login used as repository owner.

        Raises:
            AuthenticationError: If the token is invalid or expired.
            GitHubAPIError: If the request fails.
        """
        response = await self._request(method="GET", path="/user")
        user = GitHubUser.from_github_response(response.json())
        logger.debug("Authenticated GitHub user", login=user.login)
        return user

    async def create_repository(self, name: str) -> RemoteRepository:
        """Create a repository owned by the authenticated user.

        The repository is auto-initialized with a first commit so it can be
        cloned immediately.

        Args:
            name: Repository name.

        Returns:
            The created repository.

        Raises:
            GitHubAPIError: If the name is taken (422) or the token lacks
                permission.
        """
        logger.info("Creating GitHub repository", repo=name)

        response = await self._request(
            method="POST",
            path="/user/repos",
            json_data={"name": name, "auto_init": True},
        )

        repository = RemoteRepository.from_github_response(response.json())
        logger.info(
            "GitHub repository created",
            repo=repository.full_name,
            url=repository.url,
        )
        return repository

    async def get_repository(
        self,
        owner: str,
        name: str,
    ) -> Optional[RemoteRepository]:
        """Look up a repository.

        Args:
            owner: Repository owner (user or organization).
            name: Repository name.

        Returns:
            The repository, or None if GitHub answers 404.

        Raises:
            GitHubAPIError: For any failure other than 404.
        """
        try:
            response = await self._request(
                method="GET",
                path=f"/repos/{owner}/{name}",
            )
        except GitHubAPIError as e:
            if e.status_code == 404:
                logger.debug("GitHub repository not found", owner=owner, repo=name)
                return None
            raise

        return RemoteRepository.from_github_response(response.json())

    async def delete_repository(self, owner: str, name: str) -> None:
        """Delete a repository.

        Args:
            owner: Repository owner (user or organization).
            name: Repository name.

        Raises:
            GitHubAPIError: If the repository does not exist or the token
                lacks the ``delete_repo`` scope.
        """
        logger.info("Deleting GitHub repository", owner=owner, repo=name)
        await self._request(method="DELETE", path=f"/repos/{owner}/{name}")
        logger.info("GitHub repository deleted", owner=owner, repo=name)

