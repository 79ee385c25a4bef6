"""GitHub API response models.

Only the fields the provisioner reads are modelled; everything else in
the GitHub payload is ignored.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class GitHubUser(BaseModel):
    """The authenticated GitHub user.

    Attributes:
        login: Username; owner of repositories created with the token.
        id: Numeric GitHub user ID.
        name: Display name, if set.
    """

    model_config = ConfigDict(extra="ignore")

    login: str = Field(..., min_length=1, description="GitHub username")
    id: Optional[int] = Field(default=None, description="GitHub user ID")
    name: Optional[str] = Field(default=None, description="Display name")

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "GitHubUser":
        """Build a user from the ``GET /user`` response body."""
        return cls.model_validate(data)


class RemoteRepository(BaseModel):
    """A repository as returned by the GitHub repos API.

    Attributes:
        name: Repository name.
        full_name: ``owner/name``.
        url: API URL of the repository, returned on creation.
        html_url: Browser URL.
        clone_url: HTTPS clone URL.
        private: Whether the repository is private.
        default_branch: Default branch name.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    full_name: str
    url: str
    html_url: str = ""
    clone_url: str
    private: bool = False
    default_branch: Optional[str] = None

    @property
    def owner(self) -> str:
        """Owner login taken from ``full_name``."""
        return self.full_name.split("/", 1)[0]

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "RemoteRepository":
        """Build a repository from a ``/repos`` or ``/user/repos`` response body."""
        return cls.model_validate(data)
