"""Shared builders and fake collaborators."""

from datetime import datetime, timedelta, timezone

import pytest

from cpts.adapters.base import RegistryClient, SourceHostClient
from cpts.errors import PackageNotFoundError, ResourceNotFoundError
from cpts.models.package import PackageInfo
from cpts.models.schemas import (
    Commit,
    FileContent,
    Issue,
    PullRequest,
    RegistryPackage,
    RegistryStats,
    RegistryVersion,
    Repository,
)


def days_ago(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def make_commit(
    days: float = 1,
    author: str = "alice",
    message: str = "Handle missing registry metadata when resolving",
    signed: bool = False,
) -> Commit:
    return Commit(
        sha=f"{author}-{days}",
        message=message,
        author_name=author.title(),
        author_login=author,
        authored_at=days_ago(days),
        is_signed=signed,
    )


def make_repository(**overrides) -> Repository:
    fields = {
        "owner": "acme",
        "name": "widgets",
        "full_name": "acme/widgets",
        "stars": 120,
        "open_issues": 3,
        "created_at": days_ago(3 * 365),
        "pushed_at": days_ago(2),
        "default_branch": "main",
    }
    fields.update(overrides)
    return Repository(**fields)


def make_registry_package(
    name: str = "acme/widgets",
    repository: str | None = "https://github.com/acme/widgets.git",
    require: dict[str, str] | None = None,
    abandoned: bool = False,
) -> RegistryPackage:
    return RegistryPackage(
        name=name,
        repository=repository,
        versions=[RegistryVersion(version="1.0.0", require=require or {})],
        abandoned=abandoned,
    )


def make_package(**fields) -> PackageInfo:
    """PackageInfo with source-host and registry data unless overridden."""
    defaults = {
        "name": "acme/widgets",
        "repository": make_repository(),
        "registry_package": make_registry_package(),
        "registry_stats": RegistryStats(dependents=50),
    }
    defaults.update(fields)
    return PackageInfo(**defaults)


def make_file(path: str, type: str = "file") -> FileContent:
    return FileContent(path=path, name=path.rsplit("/", 1)[-1], type=type)


class FakeGitHub(SourceHostClient):
    """In-memory source host.

    ``failures`` maps a method name to the exception it raises.
    ``files`` maps paths to text content; directories map to listings.
    """

    def __init__(
        self,
        repository: Repository | None = None,
        commits: list[Commit] | None = None,
        issues: list[Issue] | None = None,
        pull_requests: list[PullRequest] | None = None,
        first_commit_date: datetime | None = None,
        listings: dict[str, list[FileContent]] | None = None,
        files: dict[str, str] | None = None,
        failures: dict[str, Exception] | None = None,
        authenticated: bool = True,
    ) -> None:
        self.repository = repository or make_repository()
        self.commits = commits or []
        self.issues = issues or []
        self.pull_requests = pull_requests or []
        self.first_commit_date = first_commit_date
        self.listings = listings or {}
        self.files = files or {}
        self.failures = failures or {}
        self.authenticated = authenticated
        self.calls: list[tuple] = []

    def _call(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if method in self.failures:
            raise self.failures[method]

    async def get_repository(self, owner, name):
        self._call("get_repository", owner, name)
        return self.repository

    async def get_commits(self, owner, name, since=None):
        self._call("get_commits", owner, name)
        return self.commits

    async def get_issues(self, owner, name, state="all", since=None):
        self._call("get_issues", owner, name)
        return self.issues

    async def get_pull_requests(self, owner, name, state="all"):
        self._call("get_pull_requests", owner, name)
        return self.pull_requests

    async def get_first_commit_date(self, owner, name):
        self._call("get_first_commit_date", owner, name)
        return self.first_commit_date

    async def get_repository_contents(self, owner, name, path=""):
        self._call("get_repository_contents", owner, name, path)
        return self.listings.get(path, [])

    async def get_file_content(self, owner, name, path):
        self._call("get_file_content", owner, name, path)
        if path not in self.files:
            return None
        return FileContent(path=path, name=path, content=self.files[path])

    def get_remaining_rate_limit(self):
        return 4000

    def is_authenticated(self):
        return self.authenticated


class FakeRegistry(RegistryClient):
    """In-memory Packagist keyed by package name."""

    def __init__(
        self,
        packages: dict[str, RegistryPackage] | None = None,
        stats: dict[str, RegistryStats] | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.packages = packages if packages is not None else {"acme/widgets": make_registry_package()}
        self.stats = stats or {}
        self.failures = failures or {}
        self.calls: list[str] = []

    async def get_package(self, vendor, name):
        self.calls.append(f"{vendor}/{name}")
        if "get_package" in self.failures:
            raise self.failures["get_package"]
        try:
            return self.packages[f"{vendor}/{name}"]
        except KeyError:
            raise PackageNotFoundError(f"{vendor}/{name}") from None

    async def get_stats(self, vendor, name):
        if "get_stats" in self.failures:
            raise self.failures["get_stats"]
        return self.stats.get(f"{vendor}/{name}", RegistryStats(dependents=10))


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def not_found() -> ResourceNotFoundError:
    return ResourceNotFoundError("/repos/acme/widgets")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from the developer's token and from values a .env load leaves behind."""
    for var in ("GITHUB_TOKEN", "CPTS_DISABLE"):
        # setenv first so the original state is restored on teardown
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
