"""Packagist registry client."""

import logging

import httpx

from cpts.adapters.base import RegistryClient
from cpts.errors import ApiError, NetworkError, PackageNotFoundError
from cpts.models.schemas import RegistryPackage, RegistryStats

logger = logging.getLogger(__name__)


class PackagistClient(RegistryClient):
    """Client for the Packagist package registry.

    Data source:
    - Package metadata and stats: https://packagist.org/packages/{vendor}/{name}.json
    """

    BASE_URL = "https://packagist.org"

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the client.

        Args:
            client: Optional httpx client for making requests.
        """
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=30.0)

    async def _fetch_package_json(self, vendor: str, name: str) -> dict:
        """Fetch the package document, shared by metadata and stats."""
        client = await self._get_client()
        url = f"{self.BASE_URL}/packages/{vendor}/{name}.json"
        headers = {"Accept": "application/json", "User-Agent": "cpts"}

        try:
            response = await client.get(url, headers=headers)
        except httpx.RequestError as e:
            raise NetworkError(f"Network error: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        if response.status_code == 404:
            logger.debug(f"Packagist 404: {vendor}/{name}")
            raise PackageNotFoundError(f"{vendor}/{name}")

        if response.status_code >= 400:
            logger.warning(f"Packagist error {response.status_code} for {vendor}/{name}")
            raise ApiError(f"Packagist error {response.status_code} for {vendor}/{name}")

        return response.json()

    async def get_package(self, vendor: str, name: str) -> RegistryPackage:
        data = await self._fetch_package_json(vendor, name)
        return RegistryPackage.from_api(data)

    async def get_stats(self, vendor: str, name: str) -> RegistryStats:
        data = await self._fetch_package_json(vendor, name)
        return RegistryStats.from_api(data)
