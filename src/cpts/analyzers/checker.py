"""Checks every locked dependency of a project against the score threshold."""

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from cpts.analyzers.resolver import PackageResolver
from cpts.analyzers.scorer import ScoreCalculator
from cpts.analyzers.trusted import TrustedPackageMatcher
from cpts.errors import CptsError, RateLimitError
from cpts.models.schemas import ScoreResult

logger = logging.getLogger(__name__)


class CheckStatus(str, Enum):
    TRUSTED = "TRUSTED"
    PASS = "PASS"
    FAIL = "FAIL"
    RATE_LIMITED = "RATE_LIMITED"
    ERROR = "ERROR"


class CheckResult(BaseModel):
    """Outcome for one package of the manifest."""

    name: str
    status: CheckStatus
    result: ScoreResult | None = None
    error: str | None = None

    @property
    def score(self) -> float | None:
        return self.result.score if self.result else None

    @property
    def grade(self) -> str:
        return self.result.grade if self.result else "-"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "score": round(self.score, 1) if self.score is not None else None,
            "grade": self.grade,
            "status": self.status.value,
            "error": self.error,
        }


class CheckReport(BaseModel):
    """All check results, in manifest order."""

    results: list[CheckResult] = Field(default_factory=list)
    threshold: float = 20

    def count(self, *statuses: CheckStatus) -> int:
        return sum(1 for r in self.results if r.status in statuses)

    @property
    def passed(self) -> int:
        return self.count(CheckStatus.PASS)

    @property
    def failed(self) -> int:
        return self.count(CheckStatus.FAIL)

    @property
    def trusted(self) -> int:
        return self.count(CheckStatus.TRUSTED)

    @property
    def errors(self) -> int:
        """Packages that produced no score, rate-limited ones included."""
        return self.count(CheckStatus.ERROR, CheckStatus.RATE_LIMITED)

    @property
    def rate_limited(self) -> bool:
        return self.count(CheckStatus.RATE_LIMITED) > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "packages": [r.to_dict() for r in self.results],
            "summary": {
                "total": len(self.results),
                "passed": self.passed,
                "failed": self.failed,
                "trusted": self.trusted,
                "errors": self.errors,
            },
        }


class DependencyChecker:
    """Scores a list of packages, skipping trusted ones.

    Packages are scored independently and concurrently; the only state they
    share is the GitHub client's rate-limit counter.
    """

    def __init__(
        self,
        resolver: PackageResolver,
        calculator: ScoreCalculator,
        matcher: TrustedPackageMatcher,
        threshold: float = 20,
        concurrency: int = 4,
    ) -> None:
        """Initialize the checker.

        Args:
            resolver: Builds PackageInfo snapshots.
            calculator: Scores resolved packages.
            matcher: Trusted package patterns.
            threshold: Minimum score to pass.
            concurrency: Maximum packages resolved at once.
        """
        self.resolver = resolver
        self.calculator = calculator
        self.matcher = matcher
        self.threshold = threshold
        self.concurrency = max(1, concurrency)

    async def check(self, package_names: list[str]) -> CheckReport:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def limited(name: str) -> CheckResult:
            async with semaphore:
                return await self.check_package(name)

        results = await asyncio.gather(*(limited(name) for name in package_names))
        return CheckReport(results=list(results), threshold=self.threshold)

    async def check_package(self, package_name: str) -> CheckResult:
        if self.matcher.matches(package_name):
            return CheckResult(name=package_name, status=CheckStatus.TRUSTED)

        try:
            package = await self.resolver.resolve(package_name)
            result = self.calculator.calculate(package)
        except RateLimitError as e:
            return CheckResult(name=package_name, status=CheckStatus.RATE_LIMITED, error=str(e))
        except CptsError as e:
            logger.warning(f"Could not score {package_name}: {e}")
            return CheckResult(name=package_name, status=CheckStatus.ERROR, error=str(e))

        status = CheckStatus.PASS if result.passes(self.threshold) else CheckStatus.FAIL
        return CheckResult(name=package_name, status=status, result=result)


def read_lock_packages(lock_path: Path, include_dev: bool = False) -> list[str]:
    """Read package names from a composer.lock file.

    Args:
        lock_path: Path to composer.lock.
        include_dev: Also return the packages-dev section.

    Returns:
        Package names in lock file order. Empty if the file doesn't exist.

    Raises:
        CptsError: If the file is not a valid JSON object.
    """
    if not lock_path.exists():
        return []

    try:
        data = json.loads(lock_path.read_text())
    except json.JSONDecodeError as e:
        raise CptsError(f"Could not parse {lock_path}: {e}") from e
    if not isinstance(data, dict):
        raise CptsError(f"Could not parse {lock_path}: expected a JSON object")

    packages = list(data.get("packages") or [])
    if include_dev:
        packages.extend(data.get("packages-dev") or [])
    return [p["name"] for p in packages if isinstance(p, dict) and p.get("name")]
