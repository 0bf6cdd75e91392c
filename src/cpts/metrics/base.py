"""Abstract base class for trust metrics."""

from abc import ABC, abstractmethod
from typing import Any

from cpts.errors import ScoreCalculationError
from cpts.models.package import PackageInfo
from cpts.models.schemas import MetricResult


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]."""
    return max(low, min(high, value))


class Metric(ABC):
    """Base class for trust metrics.

    Each metric turns a PackageInfo into a normalized [0, 1] MetricResult.
    Subclasses set ``name``, ``description`` and ``default_weight`` and
    implement ``calculate``; the configured weight overrides the default.
    """

    name: str = ""
    description: str = ""
    default_weight: float = 1.0
    higher_is_better: bool = True

    def __init__(self, weights: dict[str, float] | None = None) -> None:
        """Initialize the metric.

        Args:
            weights: Per-metric weight overrides keyed by metric name.
        """
        self._weights = weights or {}

    @property
    def weight(self) -> float:
        return float(self._weights.get(self.name, self.default_weight))

    def is_applicable(self, package: PackageInfo) -> bool:
        """Return whether the metric has the data it needs.

        Most metrics read source-host data; registry metrics override this.
        """
        return package.has_github_data

    @abstractmethod
    def calculate(self, package: PackageInfo) -> MetricResult:
        """Score the package.

        Args:
            package: Resolved package snapshot.

        Returns:
            MetricResult with a normalized score in [0, 1].

        Raises:
            ScoreCalculationError: If the computation cannot complete,
                for example on a negative count.
        """
        ...

    def _require_non_negative(self, package: PackageInfo, label: str, value: int) -> int:
        if value < 0:
            raise ScoreCalculationError(f"Negative {label} count: {value}", package.name, self.name)
        return value

    def _result(self, normalized: float, raw: dict[str, Any]) -> MetricResult:
        return MetricResult(
            name=self.name,
            normalized_score=clamp(normalized),
            weight=self.weight,
            raw=raw,
        )
