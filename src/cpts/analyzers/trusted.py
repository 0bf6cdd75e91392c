"""Trusted package matching."""

import re


def pattern_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a glob-like pattern where ``*`` matches any run of characters."""
    escaped = re.escape(pattern).replace(r"\*", ".*")
    return re.compile(escaped)


class TrustedPackageMatcher:
    """Matches package names against trusted patterns.

    Patterns are exact names ("acme/widgets") or wildcards ("acme/*",
    "acme/widget-*"). A matched package is exempt from scoring.
    """

    def __init__(self, patterns: list[str] | None = None) -> None:
        self.patterns = list(patterns or [])
        self._regexes = [pattern_to_regex(p) for p in self.patterns]

    def matches(self, package_name: str) -> bool:
        if package_name in self.patterns:
            return True
        return any(regex.fullmatch(package_name) for regex in self._regexes)
