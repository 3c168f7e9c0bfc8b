"""Local directory overlay asset client."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from anishot.domain.errors import AssetUnavailable
from anishot.services.overlays import AssetClient


@dataclass
class FileAssetClient(AssetClient):
    """Reads overlay assets from a static files directory."""

    root: Path

    def resolve(self, url: str) -> Path:
        """Map a catalog URL to a file under ``root``."""
        root = self.root.resolve()
        path = (root / url.lstrip("/")).resolve()
        if not path.is_relative_to(root):
            raise AssetUnavailable(f"Asset path escapes asset root: {url}")
        return path

    async def fetch(self, url: str) -> bytes:
        """Read asset bytes from disk."""
        path = self.resolve(url)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise AssetUnavailable(f"Failed to read {path}: {exc}") from exc

    async def close(self) -> None:
        return None
