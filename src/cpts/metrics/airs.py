"""AI-workflow risk score (AIRS).

Heuristic estimate of AI-generated or AI-assisted maintenance, built from
three signals:

- 50% hard artifacts: AI tool configuration files in the repository root
- 20% README fingerprint: emoji headings and over-polished section layout
- 30% git patterns: long commit messages and generic commit messages

The AIRS value is 0-100 with higher meaning more AI signals; the metric
reports ``1 - airs / 100`` so that fewer signals score better.
"""

import re
from collections.abc import Iterable

from cpts.metrics.base import Metric, clamp
from cpts.models.package import PackageInfo
from cpts.models.schemas import FileContent, MetricResult

AI_ARTIFACTS = (
    # Claude
    "claude.md",
    "CLAUDE.md",
    ".claude",
    # GPT / OpenAI
    "gpt.md",
    "GPT.md",
    # Generic prompts
    "prompt.md",
    "PROMPT.md",
    "system.md",
    "SYSTEM.md",
    # Cursor
    ".cursorrules",
    ".cursor",
    # Continue.dev
    ".continue",
    # GitHub Copilot
    ".github/copilot-instructions.md",
    # Generic AI directories
    ".prompts",
    ".ai",
    ".llm",
)

COPILOT_INSTRUCTIONS = ".github/copilot-instructions.md"

EMOJI_HEADING_PATTERN = re.compile(r"^##\s+[\U0001F300-\U0001F9FF]", re.MULTILINE)

POLISHED_SECTIONS = (
    "features",
    "installation",
    "usage",
    "configuration",
    "contributing",
    "license",
    "getting started",
    "quick start",
    "requirements",
)

WEIGHT_ARTIFACTS = 0.5
WEIGHT_README = 0.2
WEIGHT_GIT = 0.3

LONG_MESSAGE_CHARS = 120


def match_ai_artifacts(entries: Iterable[FileContent]) -> list[str]:
    """Return the known AI artifacts present in a directory listing.

    An entry matches an artifact by exact name, by exact path, or, for
    directory-style artifacts, by a path below it.

    Args:
        entries: Entries of a repository contents listing.

    Returns:
        Paths of the matching entries, in listing order, without duplicates.
    """
    found: list[str] = []
    for entry in entries:
        for artifact in AI_ARTIFACTS:
            if (
                entry.name == artifact
                or entry.path == artifact
                or entry.path.startswith(f"{artifact}/")
            ):
                if entry.path not in found:
                    found.append(entry.path)
                break
    return found


class AirsMetric(Metric):
    name = "airs"
    description = "AI-workflow risk score (lower is better)"
    default_weight = 3.0
    higher_is_better = False

    def calculate(self, package: PackageInfo) -> MetricResult:
        artifact_score = self._artifact_score(package)
        readme_score = self._readme_score(package)
        git_score = self._git_score(package)

        airs = 100 * (
            WEIGHT_ARTIFACTS * artifact_score
            + WEIGHT_README * readme_score
            + WEIGHT_GIT * git_score
        )

        return self._result(
            1 - airs / 100,
            {
                "airs_score": round(airs, 2),
                "artifact_score": round(artifact_score, 3),
                "readme_score": round(readme_score, 3),
                "git_score": round(git_score, 3),
                "detected_artifacts": list(package.detected_ai_artifacts),
            },
        )

    def _artifact_score(self, package: PackageInfo) -> float:
        # 1 artifact = 0.5, 2 = 0.75, 3+ = 1.0
        count = len(package.detected_ai_artifacts)
        if count == 0:
            return 0.0
        return min(1.0, 0.25 + 0.25 * count)

    def _readme_score(self, package: PackageInfo) -> float:
        readme = package.readme_content
        if not readme:
            return 0.0

        score = 0.0

        emoji_headings = len(EMOJI_HEADING_PATTERN.findall(readme))
        if emoji_headings >= 3:
            score += 0.6
        elif emoji_headings >= 1:
            score += 0.3

        lowered = readme.lower()
        sections = sum(
            1
            for section in POLISHED_SECTIONS
            if f"## {section}" in lowered or f"# {section}" in lowered
        )
        if sections >= 6:
            score += 0.4
        elif sections >= 4:
            score += 0.2

        return clamp(score)

    def _git_score(self, package: PackageInfo) -> float:
        commits = package.commits
        if not commits:
            return 0.0

        total = len(commits)
        long_messages = sum(1 for c in commits if c.message_length > LONG_MESSAGE_CHARS)
        generic_messages = sum(1 for c in commits if c.is_generic_message())

        score = 0.0

        long_ratio = long_messages / total
        if long_ratio >= 0.5:
            score += 0.5
        elif long_ratio >= 0.25:
            score += 0.25

        generic_ratio = generic_messages / total
        if generic_ratio >= 0.3:
            score += 0.5
        elif generic_ratio >= 0.15:
            score += 0.25

        return clamp(score)
