"""HTTP overlay asset client."""

from dataclasses import dataclass

import httpx

from anishot.domain.errors import AssetUnavailable
from anishot.services.overlays import AssetClient


@dataclass
class HttpxAssetClient(AssetClient):
    """Fetches overlay assets relative to a base URL using httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 10.0

    @classmethod
    def create(cls, base_url: str, timeout_seconds: float = 10.0) -> "HttpxAssetClient":
        """Create an asset client with a managed httpx session."""
        return cls(
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    def resolve(self, url: str) -> str:
        """Join a catalog URL such as ``/characters/levi.png`` to the base."""
        return str(httpx.URL(self.base_url).join(url))

    async def fetch(self, url: str) -> bytes:
        """Download asset bytes."""
        target = self.resolve(url)
        try:
            response = await self.http_client.get(target, timeout=self.timeout_seconds)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AssetUnavailable(f"Failed to fetch {target}: {exc}") from exc
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
