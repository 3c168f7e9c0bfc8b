"""Image decoding and encoding helpers."""

import base64
import binascii
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from anishot.domain.errors import EncodeFailure

_DATA_URL_PREFIX = "data:"


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode encoded image bytes into an RGBA Pillow image.

    Raises ``ValueError`` when the bytes are not a readable image, including
    images whose declared size exceeds Pillow's decompression bomb limit.
    """
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except Image.DecompressionBombError as exc:
        raise ValueError(f"Image is too large to decode: {exc}") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("Unable to decode image bytes") from exc
    image = ImageOps.exif_transpose(image)
    return image.convert("RGBA")


def decode_data_url(value: str) -> bytes:
    """Return the raw bytes of a base64 data URL or a bare base64 string."""
    payload = value.strip()
    if payload.startswith(_DATA_URL_PREFIX):
        header, _, payload = payload.partition(",")
        if ";base64" not in header:
            raise ValueError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Invalid base64 image payload") from exc


def encode_png(image: Image.Image) -> bytes:
    """Encode an image losslessly as PNG."""
    buffer = BytesIO()
    try:
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeFailure(f"PNG encoding failed: {exc}") from exc
    return buffer.getvalue()


def to_data_url(png_bytes: bytes) -> str:
    """Convert PNG bytes to a base64 data URL."""
    encoded = base64.b64encode(png_bytes).decode("utf-8")
    return f"data:image/png;base64,{encoded}"
