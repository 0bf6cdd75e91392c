"""GitHub REST API client."""

import logging
import re
from datetime import datetime, timezone

import httpx

from cpts.adapters.base import SourceHostClient
from cpts.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
)
from cpts.models.schemas import Commit, FileContent, Issue, PullRequest, Repository

logger = logging.getLogger(__name__)

LAST_PAGE_PATTERN = re.compile(r'[?&]page=(\d+)[^>]*>;\s*rel="last"')


class GitHubClient(SourceHostClient):
    """Fetches repository data from the GitHub API.

    Unauthenticated requests are limited to 60 per hour; pass a personal
    access token for 5000. The remaining quota is read from every response.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: GitHub personal access token.
            client: Optional httpx client. If not provided, one is created per request.
        """
        self._token = token or None
        self._client = client

        # Updated from the event loop thread only, with no await between read and write
        self.remaining_rate_limit: int = 5000
        self.rate_limit_reset: datetime | None = None

    def _headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "cpts",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=30.0)

    def _update_rate_limits(self, response: httpx.Response) -> None:
        """Extract and store rate limit info from response headers."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")

        if remaining is not None:
            self.remaining_rate_limit = int(remaining)
        if reset is not None:
            self.rate_limit_reset = datetime.fromtimestamp(int(reset), tz=timezone.utc)

    async def _request(self, path: str, params: dict | None = None) -> httpx.Response:
        """GET a path and map error statuses onto the cpts exception types."""
        client = await self._get_client()
        url = f"{self.BASE_URL}{path}"

        try:
            response = await client.get(url, params=params, headers=self._headers())
        except httpx.RequestError as e:
            raise NetworkError(f"Network error: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        self._update_rate_limits(response)
        status = response.status_code

        if status == 401:
            logger.warning("GitHub rejected the configured token")
            raise AuthenticationError("Invalid GitHub token")

        if status in (403, 429) and response.headers.get("X-RateLimit-Remaining") == "0":
            resets_at = self.rate_limit_reset or datetime.now(timezone.utc)
            logger.warning(f"GitHub rate limit exhausted, resets at {resets_at.isoformat()}")
            raise RateLimitError(0, resets_at, "GitHub API rate limit exceeded")

        if status == 404:
            logger.debug(f"GitHub 404: {path}")
            raise ResourceNotFoundError(path)

        if status >= 400:
            logger.warning(f"GitHub API error {status} for {path}")
            raise ApiError(f"GitHub API error {status} for {path}")

        return response

    async def _get_json(self, path: str, params: dict | None = None) -> dict | list:
        response = await self._request(path, params)
        return response.json()

    async def get_repository(self, owner: str, name: str) -> Repository:
        data = await self._get_json(f"/repos/{owner}/{name}")
        return Repository.from_api(data)

    async def get_commits(
        self,
        owner: str,
        name: str,
        since: datetime | None = None,
    ) -> list[Commit]:
        params: dict = {"per_page": 100}
        if since is not None:
            params["since"] = since.isoformat(timespec="seconds")

        data = await self._get_json(f"/repos/{owner}/{name}/commits", params)
        return [Commit.from_api(item) for item in data]

    async def get_issues(
        self,
        owner: str,
        name: str,
        state: str = "all",
        since: datetime | None = None,
    ) -> list[Issue]:
        params: dict = {
            "state": state,
            "per_page": 100,
            "sort": "created",
            "direction": "desc",
        }
        if since is not None:
            params["since"] = since.isoformat(timespec="seconds")

        data = await self._get_json(f"/repos/{owner}/{name}/issues", params)
        # The issues endpoint also lists pull requests
        return [Issue.from_api(item) for item in data if "pull_request" not in item]

    async def get_pull_requests(
        self,
        owner: str,
        name: str,
        state: str = "all",
    ) -> list[PullRequest]:
        params = {
            "state": state,
            "per_page": 100,
            "sort": "created",
            "direction": "desc",
        }
        data = await self._get_json(f"/repos/{owner}/{name}/pulls", params)
        return [PullRequest.from_api(item) for item in data]

    async def get_first_commit_date(self, owner: str, name: str) -> datetime | None:
        """Find the oldest commit on the default branch.

        Lists commits one per page and jumps to the page the ``Link`` header
        marks as last. Falls back to the repository creation date when the
        history can't be paged.
        """
        repository = await self.get_repository(owner, name)
        path = f"/repos/{owner}/{name}/commits"
        params: dict = {"per_page": 1, "sha": repository.default_branch}

        try:
            response = await self._request(path, params)
            match = LAST_PAGE_PATTERN.search(response.headers.get("Link", ""))
            if match:
                params["page"] = int(match.group(1))
                data = await self._get_json(path, params)
            else:
                # Single page: the only commit listed is also the first
                data = response.json()
        except RateLimitError:
            raise
        except ApiError as e:
            logger.debug(f"Could not page commits of {owner}/{name}: {e}")
            return repository.created_at

        if not data:
            return repository.created_at
        return Commit.from_api(data[-1]).authored_at

    async def get_repository_contents(
        self,
        owner: str,
        name: str,
        path: str = "",
    ) -> list[FileContent]:
        endpoint = f"/repos/{owner}/{name}/contents"
        if path:
            endpoint += "/" + path.lstrip("/")

        try:
            data = await self._get_json(endpoint)
        except RateLimitError:
            raise
        except ApiError:
            return []

        # A file path returns a single object, a directory returns a list
        if isinstance(data, dict):
            return [FileContent.from_api(data)]
        return [FileContent.from_api(item) for item in data]

    async def get_file_content(
        self,
        owner: str,
        name: str,
        path: str,
    ) -> FileContent | None:
        for entry in await self.get_repository_contents(owner, name, path):
            if not entry.is_directory and entry.path == path:
                return entry
        return None

    def get_remaining_rate_limit(self) -> int:
        return self.remaining_rate_limit

    def is_authenticated(self) -> bool:
        return self._token is not None
