"""Character overlay loading and compositing."""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Protocol

from PIL import Image, ImageOps

from anishot.domain.characters import Character, OverlayAsset
from anishot.domain.errors import AssetUnavailable
from anishot.domain.layouts import LayoutVariant, OverlayAnchor
from anishot.services.encoding import decode_image

_logger = logging.getLogger(__name__)


class AssetClient(Protocol):
    """Interface for fetching overlay asset bytes."""

    async def fetch(self, url: str) -> bytes:
        """Return the raw bytes stored at ``url``."""


@dataclass(frozen=True)
class OverlayPlacement:
    """Where and how an overlay is drawn onto a base image."""

    position: tuple[int, int]
    size: int
    rotation: float = 0.0
    opacity: float = 1.0


def preview_placement(frame_size: tuple[int, int], size: int) -> OverlayPlacement:
    """Anchor the overlay to the left edge, bottom aligned."""
    _, height = frame_size
    return OverlayPlacement(position=(0, height - size), size=size)


def collage_placement(
    image_size: tuple[int, int], variant: LayoutVariant, cut_index: int
) -> OverlayPlacement:
    """Place the overlay for a collage cut using the variant's anchor."""
    width, height = image_size
    transform = variant.cut_transform(cut_index)
    base_size = min(width, height) * variant.overlay_size_ratio
    size = max(1, round(base_size * transform.scale))
    x = width - size if variant.overlay_anchor == OverlayAnchor.RIGHT_BOTTOM else 0
    return OverlayPlacement(
        position=(x, height - size),
        size=size,
        rotation=transform.rotation,
        opacity=transform.opacity,
    )


def composite_overlay(  # noqa: PLR0913
    base: Image.Image,
    asset: OverlayAsset,
    position: tuple[int, int],
    size: int,
    rotation: float = 0.0,
    opacity: float = 1.0,
) -> Image.Image:
    """Alpha-composite ``asset`` onto a copy of ``base``.

    The asset is contained in a ``size`` square whose top-left corner is
    ``position``, rotated by ``rotation`` radians (clockwise on screen) about
    the square's center and faded by ``opacity``. Anything outside the base
    is clipped.
    """
    result = base.convert("RGBA") if base.mode != "RGBA" else base.copy()
    opacity = min(max(opacity, 0.0), 1.0)
    if size <= 0 or opacity == 0.0:
        return result

    sprite = ImageOps.contain(
        asset.image.convert("RGBA"), (size, size), Image.Resampling.LANCZOS
    )
    layer = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    layer.paste(sprite, ((size - sprite.width) // 2, (size - sprite.height) // 2))
    if rotation:
        layer = layer.rotate(
            -math.degrees(rotation), resample=Image.Resampling.BICUBIC, expand=True
        )
    if opacity < 1.0:
        alpha = layer.getchannel("A").point(lambda value: round(value * opacity))
        layer.putalpha(alpha)

    x = position[0] + (size - layer.width) // 2
    y = position[1] + (size - layer.height) // 2
    left, top = max(0, x), max(0, y)
    right = min(result.width, x + layer.width)
    bottom = min(result.height, y + layer.height)
    if right <= left or bottom <= top:
        return result
    source = (left - x, top - y, right - x, bottom - y)
    result.alpha_composite(layer, dest=(left, top), source=source)
    return result


@dataclass
class OverlayService:
    """Loads per-cut character assets and draws them onto photos."""

    asset_client: AssetClient
    preview_size_ratio: float = 0.5
    _assets: dict[tuple[str, int], OverlayAsset] = field(
        default_factory=dict, init=False, repr=False
    )

    async def load_asset(self, character: Character, cut_index: int) -> OverlayAsset:
        """Fetch and decode the asset for one cut, caching successes."""
        cache_key = (character.id, cut_index)
        cached = self._assets.get(cache_key)
        if cached is not None:
            return cached
        url = character.overlay_url(cut_index)
        if url is None:
            raise AssetUnavailable(
                f"Character {character.id} has no overlay for cut {cut_index}"
            )
        try:
            payload = await self.asset_client.fetch(url)
            image = await asyncio.to_thread(decode_image, payload)
        except AssetUnavailable:
            raise
        except (OSError, ValueError) as exc:
            raise AssetUnavailable(f"Failed to load overlay {url}: {exc}") from exc
        asset = OverlayAsset(source_url=url, image=image)
        self._assets[cache_key] = asset
        return asset

    async def asset_for_cut(
        self, character: Character, cut_index: int
    ) -> OverlayAsset | None:
        """Return the cut's asset, falling back to cut 0, else None."""
        try:
            return await self.load_asset(character, cut_index)
        except AssetUnavailable as exc:
            _logger.warning("Overlay for cut %s unavailable: %s", cut_index, exc)
        if cut_index == 0:
            return None
        try:
            return await self.load_asset(character, 0)
        except AssetUnavailable as exc:
            _logger.warning("Fallback overlay unavailable: %s", exc)
            return None

    async def apply(
        self,
        image: Image.Image,
        character: Character,
        cut_index: int,
        placement: OverlayPlacement,
    ) -> Image.Image:
        """Draw the cut's overlay, or return the image unchanged if none loads."""
        asset = await self.asset_for_cut(character, cut_index)
        if asset is None:
            return image
        return await asyncio.to_thread(
            composite_overlay,
            image,
            asset,
            placement.position,
            placement.size,
            rotation=placement.rotation,
            opacity=placement.opacity,
        )

    async def compose_for_collage(
        self,
        image: Image.Image,
        character: Character,
        cut_index: int,
        variant: LayoutVariant,
    ) -> Image.Image:
        """Overlay a processed photo using the collage anchor policy."""
        placement = collage_placement(image.size, variant, cut_index)
        return await self.apply(image, character, cut_index, placement)

    async def preview(
        self,
        frame: Image.Image,
        character: Character,
        cut_index: int,
        size: int | None = None,
    ) -> Image.Image:
        """Overlay a live-preview frame using the left-bottom anchor."""
        if size is None:
            size = max(1, round(min(frame.size) * self.preview_size_ratio))
        placement = preview_placement(frame.size, size)
        return await self.apply(frame, character, cut_index, placement)
