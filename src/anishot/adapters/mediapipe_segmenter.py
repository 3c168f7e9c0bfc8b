"""MediaPipe selfie segmenter adapter."""

from dataclasses import dataclass

import mediapipe as mp
import numpy as np
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from anishot.services.segmentation import SegmentationModel


@dataclass
class MediaPipeSegmenter(SegmentationModel):
    """Person segmentation backed by a MediaPipe image segmenter task."""

    segmenter: vision.ImageSegmenter

    @classmethod
    def create(cls, model_path: str) -> "MediaPipeSegmenter":
        """Load the selfie segmenter from a ``.tflite`` model file."""
        base_options = python.BaseOptions(model_asset_path=model_path)
        options = vision.ImageSegmenterOptions(
            base_options=base_options,
            output_confidence_masks=True,
            output_category_mask=False,
        )
        return cls(segmenter=vision.ImageSegmenter.create_from_options(options))

    def predict(self, rgb: np.ndarray) -> np.ndarray:
        """Return the person-confidence map for an RGB frame."""
        mp_image = mp.Image(
            image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb)
        )
        result = self.segmenter.segment(mp_image)
        masks = result.confidence_masks
        if not masks:
            raise RuntimeError("Segmenter returned no confidence masks")
        first = np.asarray(masks[0].numpy_view(), dtype=np.float32)
        if len(masks) == 1:
            return first
        # Multiclass models put background first.
        return 1.0 - first

    def close(self) -> None:
        """Release the native segmenter."""
        self.segmenter.close()
