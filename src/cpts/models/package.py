"""Aggregated package snapshot built by the resolver and read by metrics."""

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, Field

from cpts.models.schemas import (
    Commit,
    Issue,
    PullRequest,
    RegistryPackage,
    RegistryStats,
    Repository,
)

# Fallback when neither commits nor a push timestamp are known
DEFAULT_DAYS_SINCE_LAST_COMMIT = 365

# Issue response proxy
RESPONSE_CAP_DAYS = 30
COMMENTED_RESPONSE_DAYS = 3
DEFAULT_RESPONSE_DAYS = 7


class PackageInfo(BaseModel):
    """Everything known about one dependency during one resolution run.

    Populated field by field by PackageResolver, then handed to the score
    calculator and discarded. Every optional part may be missing on its own,
    so the derived accessors fall back to fixed defaults instead of failing
    on empty collections.
    """

    name: str

    # GitHub
    repository: Repository | None = None
    commits: list[Commit] = Field(default_factory=list)  # most recent first
    issues: list[Issue] = Field(default_factory=list)
    pull_requests: list[PullRequest] = Field(default_factory=list)
    first_commit_date: datetime | None = None
    detected_ai_artifacts: list[str] = Field(default_factory=list)
    readme_content: str | None = None

    # Packagist
    registry_package: RegistryPackage | None = None
    registry_stats: RegistryStats | None = None

    # Hygiene (best effort)
    test_file_count: int = 0
    source_file_count: int = 0
    todo_count: int = 0
    lines_of_code: int = 0
    stub_count: int = 0

    # Supplied from outside: number of the maintainer's other well-scored packages
    maintainer_reputation_score: int = 0

    # field name -> error message, for every fetch that degraded
    fetch_errors: dict[str, str] = Field(default_factory=dict)

    # --- Data availability ---

    @property
    def has_github_data(self) -> bool:
        return self.repository is not None

    @property
    def has_registry_data(self) -> bool:
        return self.registry_package is not None

    # --- Repository ---

    @property
    def stars(self) -> int:
        return self.repository.stars if self.repository else 0

    @property
    def open_issue_count(self) -> int:
        return self.repository.open_issues if self.repository else 0

    @property
    def is_verified_organization(self) -> bool:
        return self.repository.is_verified_organization if self.repository else False

    @property
    def effective_first_commit_date(self) -> datetime | None:
        """First commit date, falling back to the repository creation date."""
        if self.first_commit_date is not None:
            return self.first_commit_date
        return self.repository.created_at if self.repository else None

    def age_in_years(self) -> float:
        first = self.effective_first_commit_date
        if first is None:
            return 0.0
        return max(0, (_now() - first).days) / 365.25

    # --- Commits ---

    def days_since_last_commit(self) -> int:
        if self.commits:
            last = self.commits[0].authored_at
        elif self.repository and self.repository.pushed_at:
            last = self.repository.pushed_at
        else:
            return DEFAULT_DAYS_SINCE_LAST_COMMIT
        return max(0, (_now() - last).days)

    def commits_last_90_days(self) -> int:
        cutoff = _now() - timedelta(days=90)
        return sum(1 for c in self.commits if c.authored_at >= cutoff)

    def unique_committers_last_180_days(self) -> int:
        cutoff = _now() - timedelta(days=180)
        return len({c.author_key for c in self.commits if c.authored_at >= cutoff})

    def signed_commit_ratio(self) -> float:
        if not self.commits:
            return 0.0
        signed = sum(1 for c in self.commits if c.is_signed)
        return signed / len(self.commits)

    # --- Issues and pull requests ---

    def _real_issues(self) -> list[Issue]:
        return [i for i in self.issues if not i.is_pull_request]

    def issues_opened_last_365_days(self) -> int:
        cutoff = _now() - timedelta(days=365)
        return sum(1 for i in self._real_issues() if i.created_at >= cutoff)

    def issues_closed_last_365_days(self) -> int:
        cutoff = _now() - timedelta(days=365)
        return sum(
            1
            for i in self._real_issues()
            if i.is_closed and i.closed_at is not None and i.closed_at >= cutoff
        )

    def median_first_response_days(self) -> float:
        """Median days until an issue got attention.

        No timeline data is fetched, so this is a proxy: closed issues count
        their time to close (capped at 30 days), open issues with comments
        count as a 3-day response, and untouched open issues are skipped.
        Defaults to 7 days when nothing qualifies.
        """
        samples: list[float] = []
        for issue in self._real_issues():
            days = issue.time_to_close_days
            if days is not None:
                samples.append(min(days, RESPONSE_CAP_DAYS))
            elif issue.comments > 0:
                samples.append(COMMENTED_RESPONSE_DAYS)

        if not samples:
            return float(DEFAULT_RESPONSE_DAYS)

        samples.sort()
        mid = len(samples) // 2
        if len(samples) % 2 == 0:
            return (samples[mid - 1] + samples[mid]) / 2
        return samples[mid]

    def average_review_comments_per_pr(self) -> float:
        if not self.pull_requests:
            return 0.0
        total = sum(pr.total_review_comments for pr in self.pull_requests)
        return total / len(self.pull_requests)

    # --- Packagist ---

    @property
    def dependents_count(self) -> int:
        return self.registry_stats.dependents if self.registry_stats else 0

    @property
    def direct_dependency_count(self) -> int:
        return self.registry_package.direct_dependency_count if self.registry_package else 0

    @property
    def is_abandoned(self) -> bool:
        return self.registry_package.abandoned if self.registry_package else False


def _now() -> datetime:
    return datetime.now(timezone.utc)
