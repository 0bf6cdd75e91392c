"""Abstract base classes for the remote data sources."""

from abc import ABC, abstractmethod
from datetime import datetime

from cpts.errors import PackageNotFoundError
from cpts.models.schemas import (
    Commit,
    FileContent,
    Issue,
    PullRequest,
    RegistryPackage,
    RegistryStats,
    Repository,
    parse_github_repo,
)

__all__ = ["SourceHostClient", "RegistryClient", "parse_github_repo"]


class SourceHostClient(ABC):
    """Source-hosting service (GitHub) as seen by the resolver.

    Implementations raise ResourceNotFoundError, AuthenticationError,
    RateLimitError, NetworkError or ApiError.
    """

    @abstractmethod
    async def get_repository(self, owner: str, name: str) -> Repository:
        """Fetch the repository snapshot.

        Raises:
            ResourceNotFoundError: If the repository doesn't exist.
        """
        ...

    @abstractmethod
    async def get_commits(
        self,
        owner: str,
        name: str,
        since: datetime | None = None,
    ) -> list[Commit]:
        """Fetch commits on the default branch, most recent first.

        Args:
            owner: Repository owner.
            name: Repository name.
            since: Only return commits authored after this time.
        """
        ...

    @abstractmethod
    async def get_issues(
        self,
        owner: str,
        name: str,
        state: str = "all",
        since: datetime | None = None,
    ) -> list[Issue]:
        """Fetch issues, excluding pull requests."""
        ...

    @abstractmethod
    async def get_pull_requests(
        self,
        owner: str,
        name: str,
        state: str = "all",
    ) -> list[PullRequest]:
        ...

    @abstractmethod
    async def get_first_commit_date(self, owner: str, name: str) -> datetime | None:
        """Return when the oldest commit on the default branch was authored."""
        ...

    @abstractmethod
    async def get_repository_contents(
        self,
        owner: str,
        name: str,
        path: str = "",
    ) -> list[FileContent]:
        """List a directory. Returns an empty list if it can't be read."""
        ...

    @abstractmethod
    async def get_file_content(
        self,
        owner: str,
        name: str,
        path: str,
    ) -> FileContent | None:
        """Fetch a single file, or None if it doesn't exist."""
        ...

    @abstractmethod
    def get_remaining_rate_limit(self) -> int:
        ...

    @abstractmethod
    def is_authenticated(self) -> bool:
        ...


class RegistryClient(ABC):
    """Package registry (Packagist) as seen by the resolver.

    Implementations raise PackageNotFoundError, NetworkError or ApiError.
    """

    @abstractmethod
    async def get_package(self, vendor: str, name: str) -> RegistryPackage:
        """Fetch package metadata.

        Raises:
            PackageNotFoundError: If the registry doesn't know the package.
        """
        ...

    @abstractmethod
    async def get_stats(self, vendor: str, name: str) -> RegistryStats:
        """Fetch download and dependent counters."""
        ...

    async def get_dependents_count(self, vendor: str, name: str) -> int:
        stats = await self.get_stats(vendor, name)
        return stats.dependents

    async def package_exists(self, vendor: str, name: str) -> bool:
        try:
            await self.get_package(vendor, name)
        except PackageNotFoundError:
            return False
        return True
