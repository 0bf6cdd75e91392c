"""Data models and schemas."""

from cpts.models.package import PackageInfo
from cpts.models.schemas import (
    Commit,
    FileContent,
    Issue,
    MetricResult,
    PullRequest,
    RegistryPackage,
    RegistryStats,
    Repository,
    ScoreResult,
    Severity,
)

__all__ = [
    "PackageInfo",
    "Commit",
    "FileContent",
    "Issue",
    "MetricResult",
    "PullRequest",
    "RegistryPackage",
    "RegistryStats",
    "Repository",
    "ScoreResult",
    "Severity",
]
