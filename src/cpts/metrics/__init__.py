"""Trust metrics."""

from cpts.metrics.airs import AirsMetric
from cpts.metrics.base import Metric, clamp
from cpts.metrics.packagist import DependencyCountMetric, DependentsMetric
from cpts.metrics.registry import MetricRegistry
from cpts.metrics.repository import (
    ActivityMetric,
    CommittersMetric,
    HygieneMetric,
    IssueBehaviourMetric,
    RepoAgeMetric,
    StarsMetric,
)

__all__ = [
    "Metric",
    "MetricRegistry",
    "clamp",
    "ActivityMetric",
    "AirsMetric",
    "CommittersMetric",
    "DependencyCountMetric",
    "DependentsMetric",
    "HygieneMetric",
    "IssueBehaviourMetric",
    "RepoAgeMetric",
    "StarsMetric",
]
