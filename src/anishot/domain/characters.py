"""Character and overlay asset models."""

from dataclasses import dataclass

from PIL import Image


@dataclass(frozen=True)
class Character:
    """A selectable character with one overlay image per cut."""

    id: str
    name: str
    thumbnail_url: str
    overlay_images: tuple[str, ...]

    def overlay_url(self, cut_index: int) -> str | None:
        """Return the overlay URL for a cut, if one is assigned."""
        if 0 <= cut_index < len(self.overlay_images):
            return self.overlay_images[cut_index] or None
        return None


@dataclass(frozen=True)
class OverlayAsset:
    """Decoded overlay image for a single cut."""

    source_url: str
    image: Image.Image

    @property
    def natural_width(self) -> int:
        return self.image.width

    @property
    def natural_height(self) -> int:
        return self.image.height
