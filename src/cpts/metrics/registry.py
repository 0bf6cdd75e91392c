"""Ordered registry of the metrics that make up the trust score."""

from cpts.metrics.airs import AirsMetric
from cpts.metrics.base import Metric
from cpts.metrics.packagist import DependencyCountMetric, DependentsMetric
from cpts.metrics.repository import (
    ActivityMetric,
    CommittersMetric,
    HygieneMetric,
    IssueBehaviourMetric,
    RepoAgeMetric,
    StarsMetric,
)

# Registration order is the aggregation and display order
DEFAULT_METRICS: tuple[type[Metric], ...] = (
    AirsMetric,
    ActivityMetric,
    CommittersMetric,
    StarsMetric,
    DependentsMetric,
    RepoAgeMetric,
    HygieneMetric,
    IssueBehaviourMetric,
    DependencyCountMetric,
)


class MetricRegistry:
    """Holds metric instances keyed by name, in registration order."""

    def __init__(
        self,
        weights: dict[str, float] | None = None,
        metrics: list[Metric] | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            weights: Per-metric weight overrides passed to the default metrics.
            metrics: Explicit metric instances. Replaces the default set.
        """
        self._metrics: dict[str, Metric] = {}
        if metrics is None:
            metrics = [metric_class(weights) for metric_class in DEFAULT_METRICS]
        for metric in metrics:
            self.register(metric)

    def register(self, metric: Metric) -> None:
        """Add a metric, replacing any metric with the same name in place."""
        self._metrics[metric.name] = metric

    def get(self, name: str) -> Metric | None:
        return self._metrics.get(name)

    def names(self) -> list[str]:
        return list(self._metrics)

    def total_weight(self) -> float:
        return sum(metric.weight for metric in self._metrics.values())

    def __iter__(self):
        return iter(self._metrics.values())

    def __len__(self) -> int:
        return len(self._metrics)
