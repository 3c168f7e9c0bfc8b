"""Person segmentation with a lazily loaded, shared model."""

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np
from PIL import Image

from anishot.domain.errors import ModelUnavailable, SegmentationFailure
from anishot.domain.photos import SegmentationMask

_logger = logging.getLogger(__name__)


class SegmentationModel(Protocol):
    """Interface for a loaded person-segmentation model."""

    def predict(self, rgb: np.ndarray) -> np.ndarray:
        """Return a (height, width) person-confidence map in [0, 1]."""

    def close(self) -> None:
        """Release native resources held by the model."""


ModelLoader = Callable[[], SegmentationModel]


@dataclass
class LazyModelHandle:
    """Loads a model on first use and hands out the same instance afterwards.

    The loader runs at most once per successful load, even when several
    threads ask for the model at the same time. A failed load is not cached.
    """

    loader: ModelLoader
    _model: SegmentationModel | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def get(self) -> SegmentationModel:
        """Return the shared model, loading it if needed."""
        model = self._model
        if model is not None:
            return model
        with self._lock:
            if self._model is None:
                _logger.info("Loading segmentation model")
                try:
                    self._model = self.loader()
                except Exception as exc:
                    raise ModelUnavailable(
                        f"Segmentation model failed to load: {exc}"
                    ) from exc
                _logger.info("Segmentation model loaded")
            return self._model

    def close(self) -> None:
        """Close a loaded model; the next ``get`` loads a fresh one."""
        with self._lock:
            model, self._model = self._model, None
        if model is not None:
            model.close()


@dataclass
class SegmentationService:
    """Classifies each pixel of an image as person or background."""

    handle: LazyModelHandle
    threshold: float = 0.7

    async def segment(self, image: Image.Image) -> SegmentationMask:
        """Segment an image into a foreground/background mask."""
        width, height = image.size
        if width <= 0 or height <= 0:
            raise SegmentationFailure(f"Cannot segment a {width}x{height} image")
        model = await asyncio.to_thread(self.handle.get)
        rgb = np.asarray(image.convert("RGB"))
        try:
            confidence = await asyncio.to_thread(model.predict, rgb)
        except Exception as exc:
            raise SegmentationFailure(f"Segmentation inference failed: {exc}") from exc
        confidence = np.asarray(confidence)
        if confidence.ndim == 3:
            confidence = confidence[:, :, 0]
        if confidence.shape != (height, width):
            raise SegmentationFailure(
                f"Model returned a {confidence.shape} mask for a "
                f"{width}x{height} image"
            )
        return SegmentationMask.from_confidence(confidence, self.threshold)
