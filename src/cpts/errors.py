"""Exception types raised by cpts."""

from datetime import datetime, timezone


class CptsError(Exception):
    """Base class for all cpts errors."""


class PackageNotFoundError(CptsError):
    """Raised when a package name is malformed or the registry doesn't know it."""

    def __init__(self, package_name: str, message: str = "") -> None:
        self.package_name = package_name
        super().__init__(message or f"Package not found: {package_name}")


class ScoreCalculationError(CptsError):
    """Raised by a metric when its own computation cannot complete."""

    def __init__(
        self,
        message: str,
        package_name: str,
        metric_name: str | None = None,
    ) -> None:
        self.package_name = package_name
        self.metric_name = metric_name
        super().__init__(message)


class ApiError(CptsError):
    """Generic failure talking to a remote service."""


class ResourceNotFoundError(ApiError):
    """The remote service answered 404."""

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"Resource not found: {endpoint}")


class AuthenticationError(ApiError):
    """Credentials were rejected by the source host."""


class NetworkError(ApiError):
    """The request never got an HTTP response."""


class RateLimitError(ApiError):
    """The remote quota is exhausted.

    Never swallowed: aborts scoring of the current package and surfaces
    to the top-level caller.
    """

    def __init__(
        self,
        remaining: int,
        resets_at: datetime,
        message: str = "API rate limit exceeded",
    ) -> None:
        self.remaining = remaining
        self.resets_at = resets_at
        super().__init__(message)

    @property
    def seconds_until_reset(self) -> int:
        delta = self.resets_at - datetime.now(timezone.utc)
        return max(0, int(delta.total_seconds()))
