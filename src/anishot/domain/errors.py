"""Errors raised by the collage pipeline."""


class CollageError(Exception):
    """Base class for pipeline errors."""


class InvalidPhotoCount(CollageError):
    """Raised when a collage is requested with anything but four photos."""

    def __init__(self, count: int, expected: int = 4) -> None:
        super().__init__(f"Expected {expected} photos, got {count}")
        self.count = count
        self.expected = expected


class CanvasAllocationError(CollageError):
    """Raised when the output canvas cannot be created."""


class EncodeFailure(CollageError):
    """Raised when the finished canvas cannot be encoded."""


class DimensionMismatch(CollageError):
    """Raised when a mask does not match its source image."""

    def __init__(
        self, image_size: tuple[int, int], mask_size: tuple[int, int]
    ) -> None:
        super().__init__(
            f"Mask size {mask_size[0]}x{mask_size[1]} does not match "
            f"image size {image_size[0]}x{image_size[1]}"
        )
        self.image_size = image_size
        self.mask_size = mask_size


class ModelUnavailable(CollageError):
    """Raised when the segmentation model cannot be loaded."""


class SegmentationFailure(CollageError):
    """Raised when segmentation inference fails."""


class AssetUnavailable(CollageError):
    """Raised when an overlay asset cannot be fetched or decoded."""


FATAL_ERRORS: tuple[type[CollageError], ...] = (
    InvalidPhotoCount,
    CanvasAllocationError,
    EncodeFailure,
    DimensionMismatch,
)
