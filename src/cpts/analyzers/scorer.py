"""Score calculator combining metric results with the trust bonus."""

import logging

from cpts.errors import RateLimitError
from cpts.metrics.base import clamp
from cpts.metrics.registry import MetricRegistry
from cpts.models.package import PackageInfo
from cpts.models.schemas import MetricResult, ScoreResult, score_to_grade

logger = logging.getLogger(__name__)

__all__ = ["ScoreCalculator", "TrustBonus", "score_to_grade"]


class TrustBonus:
    """Additive adjustments from reputation and maintenance heuristics.

    - +0.5 maintainer has at least 2 other well-scored packages
    - +0.3 repository owned by a verified organization
    - +0.2 at least half of the sampled commits are signed
    - -0.5 at most one committer in the last 180 days
    - -0.5 no commit for over a year while more than 10 issues are open

    The sum is returned unclamped; ScoreCalculator clamps it to [-1, 1].
    """

    BONUS_MAINTAINER_REPUTATION = 0.5
    BONUS_VERIFIED_ORG = 0.3
    BONUS_SIGNED_COMMITS = 0.2
    PENALTY_BUS_FACTOR_ONE = -0.5
    PENALTY_ABANDONED = -0.5

    REPUTATION_THRESHOLD = 2
    SIGNED_COMMIT_THRESHOLD = 0.5
    ABANDONED_DAYS = 365
    ABANDONED_OPEN_ISSUES = 10

    def calculate(self, package: PackageInfo) -> float:
        amounts = {
            "maintainer_reputation": self.BONUS_MAINTAINER_REPUTATION,
            "verified_org": self.BONUS_VERIFIED_ORG,
            "signed_commits": self.BONUS_SIGNED_COMMITS,
            "bus_factor_one": self.PENALTY_BUS_FACTOR_ONE,
            "abandoned": self.PENALTY_ABANDONED,
        }
        breakdown = self.breakdown(package)
        return sum(amounts[key] for key, active in breakdown.items() if active)

    def breakdown(self, package: PackageInfo) -> dict[str, bool]:
        """Return which of the five conditions hold for the package."""
        return {
            "maintainer_reputation": package.maintainer_reputation_score >= self.REPUTATION_THRESHOLD,
            "verified_org": package.is_verified_organization,
            "signed_commits": (
                bool(package.commits)
                and package.signed_commit_ratio() >= self.SIGNED_COMMIT_THRESHOLD
            ),
            "bus_factor_one": package.unique_committers_last_180_days() <= 1,
            "abandoned": (
                package.days_since_last_commit() > self.ABANDONED_DAYS
                and package.open_issue_count > self.ABANDONED_OPEN_ISSUES
            ),
        }


class ScoreCalculator:
    """Runs the registered metrics and composes the final 0-100 score.

    ``score = 100 * weighted_sum / 21 + 10 * clamp(trust_bonus, -1, 1)``,
    clamped to [0, 100]. The divisor is fixed and does not follow the
    configured weights or which metrics were applicable.
    """

    WEIGHT_DIVISOR = 21
    TRUST_BONUS_MULTIPLIER = 10

    def __init__(
        self,
        registry: MetricRegistry | None = None,
        trust_bonus: TrustBonus | None = None,
    ) -> None:
        """Initialize the calculator.

        Args:
            registry: Metrics to run. Defaults to the nine standard metrics.
            trust_bonus: Trust bonus calculator.
        """
        self.registry = registry or MetricRegistry()
        self.trust_bonus = trust_bonus or TrustBonus()

    def calculate(self, package: PackageInfo) -> ScoreResult:
        """Score a resolved package.

        Args:
            package: Resolved package snapshot.

        Returns:
            ScoreResult with every applicable metric, including failed ones.

        Raises:
            RateLimitError: If a metric hits an exhausted API quota.
        """
        metric_results: dict[str, MetricResult] = {}
        weighted_sum = 0.0

        for metric in self.registry:
            if not metric.is_applicable(package):
                continue

            try:
                result = metric.calculate(package)
            except RateLimitError:
                logger.warning(f"Rate limited while scoring {package.name}, aborting")
                raise
            except Exception as e:
                logger.warning(f"Metric {metric.name} failed for {package.name}: {e}")
                result = MetricResult.failure(metric.name, str(e))
            else:
                weighted_sum += result.weighted_score

            metric_results[metric.name] = result

        raw_bonus = self.trust_bonus.calculate(package)
        bonus = clamp(raw_bonus, -1.0, 1.0)

        base_score = 100 * (weighted_sum / self.WEIGHT_DIVISOR)
        score = clamp(base_score + self.TRUST_BONUS_MULTIPLIER * bonus, 0.0, 100.0)

        logger.debug(
            f"{package.name}: score {score:.1f} (weighted sum {weighted_sum:.3f}, bonus {bonus:+.2f})"
        )

        return ScoreResult(
            package=package.name,
            score=score,
            metric_results=metric_results,
            trust_bonus=bonus,
            raw_trust_bonus=raw_bonus,
            trust_breakdown=self.trust_bonus.breakdown(package),
        )
