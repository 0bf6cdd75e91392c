"""Metrics computed from Packagist registry data."""

import math

from cpts.metrics.base import Metric
from cpts.models.package import PackageInfo
from cpts.models.schemas import MetricResult


class RegistryMetric(Metric):
    """Metric that only needs registry data."""

    def is_applicable(self, package: PackageInfo) -> bool:
        return package.has_registry_data


class DependentsMetric(RegistryMetric):
    name = "dependents"
    description = "Packages depending on this one, on a log scale"
    default_weight = 2.0

    def calculate(self, package: PackageInfo) -> MetricResult:
        dependents = self._require_non_negative(package, "dependents", package.dependents_count)
        log_value = math.log10(dependents + 1)
        return self._result(
            min(log_value / 4, 1.0),
            {"dependents": dependents, "log_value": round(log_value, 3)},
        )


class DependencyCountMetric(RegistryMetric):
    """Fewer direct dependencies means a smaller attack surface."""

    name = "dependency_count"
    description = "Direct dependencies of the latest release (fewer is better)"
    default_weight = 3.0
    higher_is_better = False

    MAX_ACCEPTABLE = 20

    def calculate(self, package: PackageInfo) -> MetricResult:
        count = package.direct_dependency_count
        return self._result(
            1 - min(count / self.MAX_ACCEPTABLE, 1.0),
            {"direct_dependencies": count, "max_acceptable": self.MAX_ACCEPTABLE},
        )
