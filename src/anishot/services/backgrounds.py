"""Background replacement using segmentation masks."""

import asyncio
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image

from anishot.domain.errors import (
    DimensionMismatch,
    ModelUnavailable,
    SegmentationFailure,
)
from anishot.domain.photos import SegmentationMask
from anishot.services.segmentation import SegmentationService

WHITE = (255, 255, 255, 255)

_logger = logging.getLogger(__name__)


def replace_background(
    image: Image.Image,
    mask: SegmentationMask,
    fill_color: tuple[int, int, int, int] = WHITE,
) -> Image.Image:
    """Flatten every background pixel of ``image`` to ``fill_color``.

    Foreground pixels are copied unchanged. The result is always RGBA and
    has exactly the input dimensions.
    """
    if image.size != mask.size or mask.foreground.shape != (mask.height, mask.width):
        raise DimensionMismatch(image.size, mask.size)
    pixels = np.array(image.convert("RGBA"), dtype=np.uint8)
    pixels[~mask.foreground] = np.asarray(fill_color, dtype=np.uint8)
    return Image.fromarray(pixels)


@dataclass
class BackgroundService:
    """Removes photo backgrounds, falling back to the original on failure."""

    segmentation_service: SegmentationService
    fill_color: tuple[int, int, int, int] = WHITE

    async def segment(self, image: Image.Image) -> SegmentationMask | None:
        """Return a person mask, or None if segmentation is unavailable."""
        try:
            return await self.segmentation_service.segment(image)
        except (ModelUnavailable, SegmentationFailure) as exc:
            _logger.warning("Background removal skipped: %s", exc)
            return None

    def apply(self, image: Image.Image, mask: SegmentationMask | None) -> Image.Image:
        """Replace the background if a mask is available."""
        if mask is None:
            return image
        return replace_background(image, mask, self.fill_color)

    async def remove_background(self, image: Image.Image) -> Image.Image:
        """Segment and replace the background in one step."""
        mask = await self.segment(image)
        return await asyncio.to_thread(self.apply, image, mask)
