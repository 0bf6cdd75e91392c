"""Resolution, scoring and checking."""

from cpts.analyzers.checker import CheckReport, CheckStatus, DependencyChecker
from cpts.analyzers.resolver import PackageResolver
from cpts.analyzers.scorer import ScoreCalculator, TrustBonus, score_to_grade
from cpts.analyzers.trusted import TrustedPackageMatcher

__all__ = [
    "CheckReport",
    "CheckStatus",
    "DependencyChecker",
    "PackageResolver",
    "ScoreCalculator",
    "TrustBonus",
    "TrustedPackageMatcher",
    "score_to_grade",
]
