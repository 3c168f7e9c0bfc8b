"""Domain models for captured photos and masks."""

import base64
from dataclasses import dataclass
from datetime import datetime

import numpy as np
from PIL import Image

CUT_COUNT = 4


@dataclass(frozen=True)
class CapturedPhoto:
    """A single camera capture tagged with its 1-based sequence id."""

    id: int
    image: Image.Image
    timestamp: datetime

    @property
    def cut_index(self) -> int:
        """Return the 0-based cut index for this photo."""
        return self.id - 1


@dataclass(frozen=True)
class SegmentationMask:
    """Per-pixel person/background classification aligned to a source image."""

    width: int
    height: int
    foreground: np.ndarray

    @classmethod
    def from_confidence(
        cls, confidence: np.ndarray, threshold: float
    ) -> "SegmentationMask":
        """Build a mask from a (height, width) confidence map."""
        height, width = confidence.shape[:2]
        return cls(width=width, height=height, foreground=confidence > threshold)

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class CollageResult:
    """Encoded collage artifact handed to the download collaborator."""

    image_bytes: bytes
    width: int
    height: int
    filename: str

    @property
    def data_url(self) -> str:
        """Return the artifact as an inline PNG data URL."""
        encoded = base64.b64encode(self.image_bytes).decode("utf-8")
        return f"data:image/png;base64,{encoded}"
