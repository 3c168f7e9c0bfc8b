"""Collage layout engine: arranges four processed cuts on a branded canvas."""

import logging
import math
import random
from collections.abc import Sequence
from datetime import date

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont, ImageOps

from anishot.domain.errors import CanvasAllocationError, InvalidPhotoCount
from anishot.domain.layouts import (
    Decoration,
    FitPolicy,
    LayoutGeometry,
    LayoutVariant,
    Rect,
)
from anishot.domain.photos import CUT_COUNT
from anishot.services.encoding import decode_image, encode_png

TITLE = "AniShot"
SUBTITLE = "My four-cut story"
TAGLINE = "Special moments, kept forever"
PANEL_COLOR = "#FFFFFF"
TEXT_COLOR = "#666666"
CELL_STROKE_COLOR = "#E0E0E0"
CELL_STROKE_WIDTH = 2
HEART_COLOR = (255, 224, 247, 204)
INNER_FRAME_COLOR = (255, 255, 255, 178)
SPARKLE_COUNT = 12

PhotoSource = Image.Image | bytes | None

_logger = logging.getLogger(__name__)


def build_collage(
    photos: Sequence[PhotoSource],
    variant: LayoutVariant,
    *,
    stamp_date: date | None = None,
    rng: random.Random | None = None,
) -> bytes:
    """Render four photos into the variant's canvas and return PNG bytes.

    Photos are drawn in order into cells 1-4. A photo that is missing or
    cannot be decoded leaves its cell blank instead of failing the build.
    """
    if len(photos) != CUT_COUNT:
        raise InvalidPhotoCount(len(photos), CUT_COUNT)

    geometry = LayoutGeometry.from_variant(variant)
    canvas = _allocate_canvas(variant)
    draw = ImageDraw.Draw(canvas)
    scale = variant.text_scale

    inner = geometry.inner_area
    draw.rectangle(
        (inner.x, inner.y, inner.right - 1, inner.bottom - 1), fill=PANEL_COLOR
    )
    if variant.title_space > 0:
        _draw_title(draw, variant, scale)

    for index, (photo, cell) in enumerate(zip(photos, geometry.cells, strict=True)):
        image = _resolve_photo(photo, index)
        if image is not None:
            place_photo(canvas, image, cell, variant.fit_policy)
        _draw_cell_border(draw, cell)
        if variant.show_badges:
            _draw_badge(draw, cell, index + 1, variant.accent_color, scale)

    _draw_footer(draw, variant, geometry, stamp_date or date.today(), scale)
    if variant.decorations:
        decor = _draw_decorations(variant, geometry, rng or random.Random())
        canvas.alpha_composite(decor)

    return encode_png(canvas)


def fit_rect(source_size: tuple[int, int], cell: Rect, policy: FitPolicy) -> Rect:
    """Return the rectangle a photo occupies inside ``cell``.

    ``FIT`` scales the photo to lie entirely inside the cell and centers it
    on the axis with leftover space. ``FILL`` covers the whole cell and the
    overflow is cropped, so the drawn region is the cell itself.
    """
    if policy == FitPolicy.FILL:
        return cell
    source_width, source_height = source_size
    width, height = cell.width, cell.height
    source_ratio = source_width / source_height
    cell_ratio = width / height
    if source_ratio > cell_ratio:
        height = max(1, round(source_height / source_width * cell.width))
    elif source_ratio < cell_ratio:
        width = max(1, round(source_width / source_height * cell.height))
    return Rect(
        cell.x + (cell.width - width) // 2,
        cell.y + (cell.height - height) // 2,
        width,
        height,
    )


def place_photo(
    canvas: Image.Image, photo: Image.Image, cell: Rect, policy: FitPolicy
) -> Rect:
    """Scale ``photo`` into ``cell`` on the canvas and return the drawn area."""
    photo = photo.convert("RGBA")
    if policy == FitPolicy.FILL:
        fitted = ImageOps.fit(
            photo, (cell.width, cell.height), Image.Resampling.LANCZOS
        )
        target = cell
    else:
        target = fit_rect(photo.size, cell, policy)
        fitted = photo.resize((target.width, target.height), Image.Resampling.LANCZOS)
    canvas.alpha_composite(fitted, dest=(target.x, target.y))
    return target


def gradient_background(variant: LayoutVariant) -> Image.Image:
    """Diagonal multi-stop gradient from the top-left to the bottom-right."""
    width, height = variant.size
    xs = np.arange(width, dtype=np.float32)[np.newaxis, :]
    ys = np.arange(height, dtype=np.float32)[:, np.newaxis]
    # Projection onto the (0, 0) -> (width, height) diagonal.
    t = (xs * width + ys * height) / float(width * width + height * height)
    offsets = [offset for offset, _ in variant.gradient_stops]
    colors = [ImageColor.getrgb(color) for _, color in variant.gradient_stops]
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    for channel in range(3):
        values = [color[channel] for color in colors]
        pixels[:, :, channel] = np.rint(np.interp(t, offsets, values))
    pixels[:, :, 3] = 255
    return Image.fromarray(pixels)


def _allocate_canvas(variant: LayoutVariant) -> Image.Image:
    try:
        return gradient_background(variant)
    except (MemoryError, ValueError) as exc:
        raise CanvasAllocationError(
            f"Could not allocate a {variant.width}x{variant.height} canvas: {exc}"
        ) from exc


def _resolve_photo(photo: PhotoSource, index: int) -> Image.Image | None:
    if photo is None:
        _logger.warning("Photo %s missing, leaving cell blank", index + 1)
        return None
    if not isinstance(photo, Image.Image):
        try:
            photo = decode_image(photo)
        except ValueError as exc:
            _logger.warning("Photo %s could not be decoded: %s", index + 1, exc)
            return None
    if photo.width == 0 or photo.height == 0:
        _logger.warning("Photo %s is empty, leaving cell blank", index + 1)
        return None
    return photo


def _font(size: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    return ImageFont.load_default(size=max(8, round(size)))


def _draw_title(draw: ImageDraw.ImageDraw, variant: LayoutVariant, scale: float) -> None:
    center_x = variant.width / 2
    top = variant.frame_thickness
    draw.text(
        (center_x, top + variant.title_space * 0.38),
        TITLE,
        font=_font(36 * scale),
        fill=variant.accent_color,
        anchor="mm",
    )
    draw.text(
        (center_x, top + variant.title_space * 0.75),
        SUBTITLE,
        font=_font(24 * scale),
        fill=TEXT_COLOR,
        anchor="mm",
    )


def _draw_cell_border(draw: ImageDraw.ImageDraw, cell: Rect) -> None:
    draw.rectangle(
        (cell.x, cell.y, cell.right - 1, cell.bottom - 1),
        outline=CELL_STROKE_COLOR,
        width=CELL_STROKE_WIDTH,
    )


def _draw_badge(
    draw: ImageDraw.ImageDraw, cell: Rect, number: int, color: str, scale: float
) -> None:
    radius = max(6, round(16 * scale))
    center_x = cell.x + radius + max(2, round(4 * scale))
    center_y = cell.y + radius + max(2, round(4 * scale))
    draw.ellipse(
        (center_x - radius, center_y - radius, center_x + radius, center_y + radius),
        fill=color,
    )
    draw.text(
        (center_x, center_y),
        str(number),
        font=_font(18 * scale),
        fill="#FFFFFF",
        anchor="mm",
    )


def _draw_footer(
    draw: ImageDraw.ImageDraw,
    variant: LayoutVariant,
    geometry: LayoutGeometry,
    stamp_date: date,
    scale: float,
) -> None:
    center_x = variant.width / 2
    top = geometry.grid_bottom
    draw.text(
        (center_x, top + variant.branding_space * 0.4),
        format_stamp(stamp_date),
        font=_font(20 * scale),
        fill=variant.accent_color,
        anchor="mm",
    )
    draw.text(
        (center_x, top + variant.branding_space * 0.78),
        TAGLINE,
        font=_font(16 * scale),
        fill=TEXT_COLOR,
        anchor="mm",
    )


def format_stamp(stamp_date: date) -> str:
    """Format the capture date stamp shown in the footer."""
    return f"{stamp_date.year}. {stamp_date.month}. {stamp_date.day}."


def _draw_decorations(
    variant: LayoutVariant, geometry: LayoutGeometry, rng: random.Random
) -> Image.Image:
    layer = Image.new("RGBA", variant.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    if Decoration.INNER_FRAME in variant.decorations:
        inset = geometry.frame_thickness // 2
        draw.rectangle(
            (inset, inset, variant.width - inset - 1, variant.height - inset - 1),
            outline=INNER_FRAME_COLOR,
            width=3,
        )
    if Decoration.CORNER_HEARTS in variant.decorations:
        heart = max(8, geometry.frame_thickness)
        margin = max(2, (geometry.frame_thickness - heart) // 2 + 2)
        for x, y in (
            (margin, margin),
            (variant.width - heart - margin, margin),
            (margin, variant.height - heart - margin),
            (variant.width - heart - margin, variant.height - heart - margin),
        ):
            draw.polygon(_heart_points(x, y, heart), fill=HEART_COLOR)
    if Decoration.SPARKLES in variant.decorations:
        _draw_sparkles(draw, variant, geometry, rng)
    return layer


def _heart_points(x: float, y: float, size: float) -> list[tuple[float, float]]:
    points = []
    for step in range(32):
        t = 2 * math.pi * step / 32
        px = 16 * math.sin(t) ** 3
        py = -(
            13 * math.cos(t)
            - 5 * math.cos(2 * t)
            - 2 * math.cos(3 * t)
            - math.cos(4 * t)
        )
        points.append((x + size / 2 + px * size / 34, y + size / 2 + py * size / 34))
    return points


def _draw_sparkles(
    draw: ImageDraw.ImageDraw,
    variant: LayoutVariant,
    geometry: LayoutGeometry,
    rng: random.Random,
) -> None:
    inner = geometry.inner_area
    radius = max(3, round(8 * variant.text_scale))
    lowest = geometry.grid_bottom + variant.branding_space + radius
    if lowest >= inner.bottom - radius:
        return
    for _ in range(SPARKLE_COUNT):
        x = rng.randint(inner.x + radius, inner.right - radius - 1)
        y = rng.randint(lowest, inner.bottom - radius - 1)
        spot = Rect(x - radius, y - radius, radius * 2, radius * 2)
        if not inner.contains(spot) or any(
            spot.intersects(cell) for cell in geometry.cells
        ):
            continue
        alpha = rng.randint(90, 200)
        draw.polygon(
            [
                (x, y - radius),
                (x + radius / 3, y - radius / 3),
                (x + radius, y),
                (x + radius / 3, y + radius / 3),
                (x, y + radius),
                (x - radius / 3, y + radius / 3),
                (x - radius, y),
                (x - radius / 3, y - radius / 3),
            ],
            fill=(186, 104, 200, alpha),
        )
