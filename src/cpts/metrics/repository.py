"""Metrics computed from source-host repository data."""

import math

from cpts.metrics.base import Metric
from cpts.models.package import PackageInfo
from cpts.models.schemas import MetricResult


class ActivityMetric(Metric):
    """Recent commit recency and cadence."""

    name = "activity"
    description = "How recently and how often the repository receives commits"
    default_weight = 4.0

    RECENCY_DECAY_DAYS = 180
    CADENCE_TARGET = 20

    def calculate(self, package: PackageInfo) -> MetricResult:
        days = package.days_since_last_commit()
        commits = package.commits_last_90_days()

        recency = math.exp(-days / self.RECENCY_DECAY_DAYS)
        cadence = min(commits / self.CADENCE_TARGET, 1.0)

        return self._result(
            0.6 * recency + 0.4 * cadence,
            {
                "days_since_last_commit": days,
                "commits_last_90d": commits,
                "recency_component": round(recency, 3),
                "cadence_component": round(cadence, 3),
            },
        )


class CommittersMetric(Metric):
    """Number of distinct people committing recently."""

    name = "committers"
    description = "Unique committers over the last 180 days"
    default_weight = 5.0

    FULL_SCORE_COMMITTERS = 5

    def calculate(self, package: PackageInfo) -> MetricResult:
        unique = package.unique_committers_last_180_days()
        return self._result(
            min(unique / self.FULL_SCORE_COMMITTERS, 1.0),
            {
                "unique_committers_180d": unique,
                "max_for_full_score": self.FULL_SCORE_COMMITTERS,
            },
        )


class StarsMetric(Metric):
    name = "stars"
    description = "Repository stars on a log scale"
    default_weight = 1.0

    def calculate(self, package: PackageInfo) -> MetricResult:
        stars = self._require_non_negative(package, "star", package.stars)
        log_value = math.log10(stars + 1)
        return self._result(
            min(log_value / 4, 1.0),
            {"stars": stars, "log_value": round(log_value, 3)},
        )


class RepoAgeMetric(Metric):
    name = "repo_age"
    description = "Years since the first commit"
    default_weight = 2.0

    FULL_SCORE_YEARS = 5

    def calculate(self, package: PackageInfo) -> MetricResult:
        years = package.age_in_years()
        first = package.effective_first_commit_date
        return self._result(
            min(years / self.FULL_SCORE_YEARS, 1.0),
            {
                "age_years": round(years, 2),
                "first_commit_date": first.date().isoformat() if first else None,
            },
        )


class HygieneMetric(Metric):
    """Code hygiene from test coverage, TODO density and stubs.

    The counters are coarse placeholders derived from the top-level
    directory listing, not from walking the tree.
    """

    name = "hygiene"
    description = "Test presence, TODO density and stub count"
    default_weight = 1.0

    TARGET_TEST_RATIO = 0.5
    MAX_TODO_RATIO = 0.002
    MAX_STUBS = 10

    def calculate(self, package: PackageInfo) -> MetricResult:
        tests = package.test_file_count
        sources = package.source_file_count
        todos = package.todo_count
        loc = package.lines_of_code
        stubs = package.stub_count

        test_ratio = tests / sources if sources > 0 else 0.0
        tests_norm = min(test_ratio / self.TARGET_TEST_RATIO, 1.0)

        todo_ratio = todos / loc if loc > 0 else 0.0
        todo_norm = 1 - min(todo_ratio / self.MAX_TODO_RATIO, 1.0)

        stub_norm = 1 - min(stubs / self.MAX_STUBS, 1.0)

        return self._result(
            0.5 * tests_norm + 0.3 * todo_norm + 0.2 * stub_norm,
            {
                "test_files": tests,
                "src_files": sources,
                "test_ratio": round(test_ratio, 3),
                "tests_norm": round(tests_norm, 3),
                "todo_count": todos,
                "loc": loc,
                "todo_norm": round(todo_norm, 3),
                "stub_count": stubs,
                "stub_norm": round(stub_norm, 3),
            },
        )


class IssueBehaviourMetric(Metric):
    """Issue closing rate, response time and PR review depth."""

    name = "issue_behaviour"
    description = "Issue close ratio, first response time and PR review activity"
    default_weight = 4.0

    MAX_RESPONSE_DAYS = 14
    TARGET_REVIEW_COMMENTS = 3

    def calculate(self, package: PackageInfo) -> MetricResult:
        opened = package.issues_opened_last_365_days()
        closed = package.issues_closed_last_365_days()
        response_days = package.median_first_response_days()
        review_comments = package.average_review_comments_per_pr()

        close_ratio = closed / (opened + 1)
        close_norm = min(close_ratio, 1.0)
        response_norm = 1 - min(response_days / self.MAX_RESPONSE_DAYS, 1.0)
        review_norm = min(review_comments / self.TARGET_REVIEW_COMMENTS, 1.0)

        return self._result(
            0.4 * close_norm + 0.3 * response_norm + 0.3 * review_norm,
            {
                "issues_opened_365d": opened,
                "issues_closed_365d": closed,
                "close_ratio": round(close_ratio, 3),
                "close_norm": round(close_norm, 3),
                "median_response_days": round(response_days, 1),
                "response_norm": round(response_norm, 3),
                "review_comments_per_pr": round(review_comments, 2),
                "review_norm": round(review_norm, 3),
            },
        )
