"""Resolves a package name into a PackageInfo snapshot."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from cpts.adapters.base import RegistryClient, SourceHostClient
from cpts.errors import PackageNotFoundError, RateLimitError
from cpts.metrics.airs import match_ai_artifacts
from cpts.models.package import PackageInfo
from cpts.models.schemas import FileContent

logger = logging.getLogger(__name__)

README_CANDIDATES = ("README.md", "Readme.md", "readme.md", "README")

SOURCE_DIRS = {"src", "lib", "app"}
TEST_DIRS = {"tests", "test", "spec"}

# Coarse hygiene counts; the tree is never walked
PLACEHOLDER_SOURCE_FILES = 10
PLACEHOLDER_TEST_FILES = 5
PLACEHOLDER_LINES_OF_CODE = 1000

COMMIT_WINDOW_DAYS = 180
ISSUE_WINDOW_DAYS = 365


class PackageResolver:
    """Builds a PackageInfo from Packagist and GitHub.

    Resolution stages:
    1. Fetch registry metadata, then stats
    2. Derive the GitHub repository from the declared repository URL
    3. Fetch the repository snapshot
    4. Fan out the independent GitHub fetches (commits, issues, pull
       requests, first commit, root listing, README)

    Every stage except name parsing degrades on failure: the field stays
    at its default and the error is kept in ``PackageInfo.fetch_errors``.
    RateLimitError is never degraded and propagates to the caller.
    """

    def __init__(
        self,
        github: SourceHostClient,
        registry: RegistryClient,
        concurrency: int = 4,
    ) -> None:
        """Initialize the resolver.

        Args:
            github: Source-host client.
            registry: Package registry client.
            concurrency: Maximum GitHub requests in flight for one package.
        """
        self.github = github
        self.registry = registry
        self.concurrency = max(1, concurrency)

    async def resolve(
        self,
        package_name: str,
        maintainer_reputation_score: int = 0,
    ) -> PackageInfo:
        """Resolve a package name to a populated PackageInfo.

        Args:
            package_name: Package in vendor/name form.
            maintainer_reputation_score: Externally computed reputation signal.

        Returns:
            PackageInfo with whatever data could be fetched.

        Raises:
            PackageNotFoundError: If the name has no vendor separator.
            RateLimitError: If any remote quota is exhausted.
        """
        vendor, name = parse_package_name(package_name)
        package = PackageInfo(
            name=package_name,
            maintainer_reputation_score=maintainer_reputation_score,
        )

        await self._fetch_registry_data(package, vendor, name)

        repo_ref = (
            package.registry_package.github_owner_and_repo
            if package.registry_package
            else None
        )
        if repo_ref is None:
            logger.debug(f"{package_name}: no GitHub repository, skipping source-host data")
            return package

        owner, repo = repo_ref
        try:
            package.repository = await self.github.get_repository(owner, repo)
        except RateLimitError:
            raise
        except Exception as e:
            self._degrade(package, "repository", e)
            return package

        await self._fetch_github_data(package, owner, repo)

        logger.debug(
            f"{package_name}: resolved {owner}/{repo} with {len(package.commits)} commits, "
            f"{len(package.issues)} issues, {len(package.fetch_errors)} degraded fields"
        )
        return package

    async def _fetch_registry_data(self, package: PackageInfo, vendor: str, name: str) -> None:
        try:
            registry_package = await self.registry.get_package(vendor, name)
            registry_stats = await self.registry.get_stats(vendor, name)
        except RateLimitError:
            raise
        except Exception as e:
            self._degrade(package, "registry_package", e)
            return

        package.registry_package = registry_package
        package.registry_stats = registry_stats

    async def _fetch_github_data(self, package: PackageInfo, owner: str, repo: str) -> None:
        now = datetime.now(timezone.utc)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def limited(coro):
            async with semaphore:
                return await coro

        branches: dict[str, Any] = {
            "commits": self.github.get_commits(
                owner, repo, since=now - timedelta(days=COMMIT_WINDOW_DAYS)
            ),
            "issues": self.github.get_issues(
                owner, repo, "all", since=now - timedelta(days=ISSUE_WINDOW_DAYS)
            ),
            "pull_requests": self.github.get_pull_requests(owner, repo, "all"),
            "first_commit_date": self.github.get_first_commit_date(owner, repo),
            "listing": self._fetch_listing(owner, repo),
            "readme_content": self._fetch_readme(owner, repo),
        }

        outcomes = await asyncio.gather(
            *(limited(coro) for coro in branches.values()),
            return_exceptions=True,
        )
        results = dict(zip(branches, outcomes))

        for outcome in outcomes:
            if isinstance(outcome, RateLimitError):
                raise outcome

        for field, outcome in results.items():
            if isinstance(outcome, BaseException):
                if field == "listing":
                    self._degrade(package, "detected_ai_artifacts", outcome)
                    self._degrade(package, "hygiene", outcome)
                else:
                    self._degrade(package, field, outcome)
                continue

            if field == "listing":
                root, github_dir = outcome
                package.detected_ai_artifacts = match_ai_artifacts([*root, *github_dir])
                self._apply_hygiene(package, root)
            elif outcome is not None:
                setattr(package, field, outcome)

    async def _fetch_listing(
        self, owner: str, repo: str
    ) -> tuple[list[FileContent], list[FileContent]]:
        """Fetch the root listing, plus the .github listing when that directory exists."""
        root = await self.github.get_repository_contents(owner, repo)
        github_dir: list[FileContent] = []
        if any(entry.is_directory and entry.name == ".github" for entry in root):
            github_dir = await self.github.get_repository_contents(owner, repo, ".github")
        return root, github_dir

    async def _fetch_readme(self, owner: str, repo: str) -> str | None:
        """Return the first README found among the candidate names."""
        for candidate in README_CANDIDATES:
            try:
                entry = await self.github.get_file_content(owner, repo, candidate)
            except RateLimitError:
                raise
            except Exception as e:
                logger.debug(f"{owner}/{repo}: could not read {candidate}: {e}")
                continue
            if entry is not None:
                return entry.decoded_content
        return None

    def _apply_hygiene(self, package: PackageInfo, root: list[FileContent]) -> None:
        directories = {entry.name.lower() for entry in root if entry.is_directory}
        package.source_file_count = PLACEHOLDER_SOURCE_FILES if directories & SOURCE_DIRS else 0
        package.test_file_count = PLACEHOLDER_TEST_FILES if directories & TEST_DIRS else 0
        package.lines_of_code = PLACEHOLDER_LINES_OF_CODE
        package.todo_count = 0
        package.stub_count = 0

    def _degrade(self, package: PackageInfo, field: str, error: BaseException) -> None:
        message = str(error) or type(error).__name__
        package.fetch_errors[field] = message
        logger.warning(f"{package.name}: could not fetch {field}: {message}")


def parse_package_name(package_name: str) -> tuple[str, str]:
    """Split ``vendor/name`` on the first slash.

    Raises:
        PackageNotFoundError: If there is no slash.
    """
    vendor, sep, name = package_name.partition("/")
    if not sep:
        raise PackageNotFoundError(package_name, f"Invalid package name format: {package_name}")
    return vendor, name
