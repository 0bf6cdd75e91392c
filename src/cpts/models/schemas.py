"""Pydantic models for source-host, registry and score data."""

import base64
import binascii
import copy
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by GitHub and Packagist."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --- GitHub Data Models ---


class Repository(BaseModel):
    """Snapshot of a GitHub repository."""

    owner: str
    name: str
    full_name: str = ""
    description: str | None = None
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    has_issues: bool = True
    archived: bool = False
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    pushed_at: datetime | None = None
    default_branch: str = "main"
    is_organization: bool = False
    is_verified_organization: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "Repository":
        owner = data.get("owner") or {}
        return cls(
            owner=owner.get("login", ""),
            name=data.get("name", ""),
            full_name=data.get("full_name", ""),
            description=data.get("description"),
            stars=data.get("stargazers_count", 0),
            forks=data.get("forks_count", 0),
            open_issues=data.get("open_issues_count", 0),
            has_issues=data.get("has_issues", True),
            archived=data.get("archived", False),
            created_at=parse_datetime(data.get("created_at")) or _now(),
            updated_at=parse_datetime(data.get("updated_at")) or _now(),
            pushed_at=parse_datetime(data.get("pushed_at")),
            default_branch=data.get("default_branch") or "main",
            is_organization=owner.get("type") == "Organization",
            is_verified_organization=bool(owner.get("is_verified", False)),
        )


# Exact or "<word> ..." prefix matches count as low-effort messages
GENERIC_COMMIT_MESSAGES = (
    "update",
    "fix",
    "add",
    "remove",
    "change",
    "modify",
    "edit",
    "initial commit",
    "wip",
    "work in progress",
    "minor",
    "misc",
    "stuff",
)


class Commit(BaseModel):
    """A commit from the repository's commit listing."""

    sha: str = ""
    message: str = ""
    author_name: str = "Unknown"
    author_email: str | None = None
    author_login: str | None = None
    authored_at: datetime = Field(default_factory=_now)
    is_signed: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "Commit":
        commit = data.get("commit") or {}
        author = commit.get("author") or {}
        verification = commit.get("verification") or {}
        return cls(
            sha=data.get("sha", ""),
            message=commit.get("message") or "",
            author_name=author.get("name") or "Unknown",
            author_email=author.get("email"),
            author_login=(data.get("author") or {}).get("login"),
            authored_at=parse_datetime(author.get("date")) or _now(),
            is_signed=bool(verification.get("verified", False)),
        )

    @property
    def message_length(self) -> int:
        return len(self.message)

    @property
    def author_key(self) -> str:
        """Identity used to count unique committers: login, else email, else name."""
        return self.author_login or self.author_email or self.author_name

    def is_generic_message(self) -> bool:
        normalized = self.message.strip().lower()
        return any(
            normalized == generic or normalized.startswith(f"{generic} ")
            for generic in GENERIC_COMMIT_MESSAGES
        )


class Issue(BaseModel):
    """An issue (or, from the raw endpoint, a pull request disguised as one)."""

    number: int = 0
    title: str = ""
    state: str = "open"
    created_at: datetime = Field(default_factory=_now)
    closed_at: datetime | None = None
    author_login: str | None = None
    comments: int = 0
    is_pull_request: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "Issue":
        return cls(
            number=data.get("number", 0),
            title=data.get("title") or "",
            state=data.get("state", "open"),
            created_at=parse_datetime(data.get("created_at")) or _now(),
            closed_at=parse_datetime(data.get("closed_at")),
            author_login=(data.get("user") or {}).get("login"),
            comments=data.get("comments", 0),
            is_pull_request="pull_request" in data,
        )

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"

    @property
    def time_to_close_days(self) -> float | None:
        if self.closed_at is None:
            return None
        return abs((self.closed_at - self.created_at).total_seconds()) / 86400


class PullRequest(BaseModel):
    """A pull request with its discussion counters."""

    number: int = 0
    title: str = ""
    state: str = "open"
    created_at: datetime = Field(default_factory=_now)
    merged_at: datetime | None = None
    closed_at: datetime | None = None
    author_login: str | None = None
    comments: int = 0
    review_comments: int = 0

    @classmethod
    def from_api(cls, data: dict) -> "PullRequest":
        return cls(
            number=data.get("number", 0),
            title=data.get("title") or "",
            state=data.get("state", "open"),
            created_at=parse_datetime(data.get("created_at")) or _now(),
            merged_at=parse_datetime(data.get("merged_at")),
            closed_at=parse_datetime(data.get("closed_at")),
            author_login=(data.get("user") or {}).get("login"),
            comments=data.get("comments", 0),
            review_comments=data.get("review_comments", 0),
        )

    @property
    def is_merged(self) -> bool:
        return self.merged_at is not None

    @property
    def total_review_comments(self) -> int:
        return self.comments + self.review_comments


class FileContent(BaseModel):
    """An entry from the repository contents API (file or directory)."""

    path: str = ""
    name: str = ""
    type: str = "file"
    size: int = 0
    content: str | None = None
    encoding: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "FileContent":
        return cls(
            path=data.get("path", ""),
            name=data.get("name", ""),
            type=data.get("type", "file"),
            size=data.get("size") or 0,
            content=data.get("content"),
            encoding=data.get("encoding"),
        )

    @property
    def is_directory(self) -> bool:
        return self.type == "dir"

    @property
    def decoded_content(self) -> str | None:
        if self.content is None:
            return None
        if self.encoding != "base64":
            return self.content
        try:
            raw = base64.b64decode(self.content, validate=False)
        except (binascii.Error, ValueError):
            return None
        return raw.decode("utf-8", errors="replace")


# --- Packagist Data Models ---


GITHUB_REPO_PATTERN = re.compile(r"github\.com[/:]([^/]+)/([^/.]+(?:\.[^/.]+)*)")


def parse_github_repo(url: str | None) -> tuple[str, str] | None:
    """Extract (owner, repo) from a GitHub URL, dropping a trailing .git."""
    if not url:
        return None
    match = GITHUB_REPO_PATTERN.search(url)
    if not match:
        return None
    return match.group(1), match.group(2).removesuffix(".git")


class RegistryVersion(BaseModel):
    """One released (or dev) version of a registry package."""

    version: str = ""
    version_normalized: str = ""
    license: str | None = None
    require: dict[str, str] = Field(default_factory=dict)
    require_dev: dict[str, str] = Field(default_factory=dict)
    time: datetime | None = None
    source: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "RegistryVersion":
        license_info = data.get("license")
        if isinstance(license_info, list):
            license_info = license_info[0] if license_info else None
        require = data.get("require")
        require_dev = data.get("require-dev")
        return cls(
            version=data.get("version", ""),
            version_normalized=data.get("version_normalized") or data.get("version", ""),
            license=license_info,
            # Packagist encodes "no requirements" as a string or empty list
            require=require if isinstance(require, dict) else {},
            require_dev=require_dev if isinstance(require_dev, dict) else {},
            time=parse_datetime(data.get("time")),
            source=(data.get("source") or {}).get("url"),
        )

    @property
    def is_dev(self) -> bool:
        return self.version.startswith("dev-")


class RegistryPackage(BaseModel):
    """Package metadata from Packagist."""

    name: str
    description: str | None = None
    repository: str | None = None
    downloads: int = 0
    favers: int = 0
    versions: list[RegistryVersion] = Field(default_factory=list)
    maintainers: list[str] = Field(default_factory=list)
    type: str | None = None
    abandoned: bool = False
    replacement_package: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "RegistryPackage":
        package = data.get("package", data)

        raw_versions = package.get("versions") or {}
        if isinstance(raw_versions, dict):
            raw_versions = list(raw_versions.values())
        versions = [RegistryVersion.from_api(v) for v in raw_versions]

        maintainers = [
            m.get("name", "") if isinstance(m, dict) else str(m)
            for m in package.get("maintainers", [])
        ]

        downloads = package.get("downloads", 0)
        if isinstance(downloads, dict):
            downloads = downloads.get("total", 0)

        abandoned = package.get("abandoned")
        return cls(
            name=package.get("name", ""),
            description=package.get("description"),
            repository=package.get("repository"),
            downloads=downloads or 0,
            favers=package.get("favers", 0),
            versions=versions,
            maintainers=maintainers,
            type=package.get("type"),
            abandoned=bool(abandoned),
            replacement_package=abandoned if isinstance(abandoned, str) else None,
        )

    @property
    def latest_version(self) -> RegistryVersion | None:
        """First non-dev version, falling back to whatever is listed first."""
        for version in self.versions:
            if not version.is_dev:
                return version
        return self.versions[0] if self.versions else None

    @property
    def direct_dependency_count(self) -> int:
        latest = self.latest_version
        if latest is None:
            return 0
        return sum(
            1
            for dep in latest.require
            if not dep.startswith("php") and not dep.startswith("ext-")
        )

    @property
    def github_owner_and_repo(self) -> tuple[str, str] | None:
        """Extract (owner, repo) from the declared repository URL."""
        return parse_github_repo(self.repository)


class RegistryStats(BaseModel):
    """Download and dependent counters from Packagist."""

    total_downloads: int = 0
    monthly_downloads: int = 0
    daily_downloads: int = 0
    dependents: int = 0
    suggesters: int = 0

    @classmethod
    def from_api(cls, data: dict) -> "RegistryStats":
        package = data.get("package", data)
        downloads = package.get("downloads") or {}
        if not isinstance(downloads, dict):
            downloads = {"total": downloads}
        return cls(
            total_downloads=downloads.get("total", 0),
            monthly_downloads=downloads.get("monthly", 0),
            daily_downloads=downloads.get("daily", 0),
            dependents=package.get("dependents", 0),
            suggesters=package.get("suggesters", 0),
        )


# --- Scoring Models ---


def _freeze(value: Any) -> Any:
    """Return a read-only copy: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    """Return a plain, independent dict/list copy of a frozen value."""
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return copy.deepcopy(value)


class Severity(str, Enum):
    """Display bucket for a metric's normalized score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    CAUTION = "caution"
    WARNING = "warning"
    FAIL = "fail"

    @classmethod
    def from_score(cls, normalized: float, failed: bool = False) -> "Severity":
        if failed:
            return cls.FAIL
        if normalized >= 0.8:
            return cls.EXCELLENT
        if normalized >= 0.6:
            return cls.GOOD
        if normalized >= 0.4:
            return cls.CAUTION
        if normalized >= 0.2:
            return cls.WARNING
        return cls.FAIL


class MetricResult(BaseModel):
    """Outcome of one metric for one package."""

    model_config = ConfigDict(frozen=True)

    name: str
    normalized_score: float = Field(ge=0, le=1)
    weight: float = Field(ge=0)
    raw: Mapping[str, Any] = Field(default_factory=dict)
    failed: bool = False
    error: str | None = None

    @field_validator("raw", mode="after")
    @classmethod
    def _freeze_raw(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return _freeze(value)

    @classmethod
    def failure(cls, name: str, error: str) -> "MetricResult":
        """Zero-weight sentinel for a metric that raised."""
        return cls(name=name, normalized_score=0.0, weight=0.0, failed=True, error=error)

    @property
    def weighted_score(self) -> float:
        return self.normalized_score * self.weight

    @property
    def severity(self) -> Severity:
        return Severity.from_score(self.normalized_score, self.failed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "normalized_score": round(self.normalized_score, 3),
            "weight": self.weight,
            "weighted_score": round(self.weighted_score, 3),
            "raw": _thaw(self.raw),
            "failed": self.failed,
            "error": self.error,
        }


def score_to_grade(score: float) -> str:
    """Map a 0-100 score to a letter grade."""
    if score >= 80:
        return "A"
    elif score >= 60:
        return "B"
    elif score >= 40:
        return "C"
    elif score >= 20:
        return "D"
    else:
        return "F"


class ScoreResult(BaseModel):
    """Final trust score for a package."""

    model_config = ConfigDict(frozen=True)

    package: str
    score: float = Field(ge=0, le=100)
    metric_results: Mapping[str, MetricResult] = Field(default_factory=dict)
    trust_bonus: float = Field(ge=-1, le=1)
    raw_trust_bonus: float
    trust_breakdown: Mapping[str, bool] = Field(default_factory=dict)
    calculated_at: datetime = Field(default_factory=_now)

    @field_validator("metric_results", "trust_breakdown", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @property
    def grade(self) -> str:
        return score_to_grade(self.score)

    def passes(self, threshold: float) -> bool:
        return self.score >= threshold

    def metric(self, name: str) -> MetricResult | None:
        return self.metric_results.get(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.package,
            "score": round(self.score, 1),
            "grade": self.grade,
            "trust_bonus": round(self.trust_bonus, 2),
            "raw_trust_bonus": round(self.raw_trust_bonus, 2),
            "calculated_at": self.calculated_at.isoformat(timespec="seconds"),
            "metrics": {name: result.to_dict() for name, result in self.metric_results.items()},
        }
