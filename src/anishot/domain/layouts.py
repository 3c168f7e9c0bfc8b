"""Layout variants and the geometry derived from them."""

from dataclasses import dataclass, field
from enum import StrEnum

from anishot.domain.photos import CUT_COUNT


class Arrangement(StrEnum):
    """How the four cells are arranged on the canvas."""

    GRID = "grid"
    STACK = "stack"


class FitPolicy(StrEnum):
    """How a photo is scaled into its cell."""

    FIT = "fit"
    FILL = "fill"


class OverlayAnchor(StrEnum):
    """Corner the character overlay is anchored to."""

    LEFT_BOTTOM = "left-bottom"
    RIGHT_BOTTOM = "right-bottom"


class Decoration(StrEnum):
    """Cosmetic extras drawn after the photos."""

    INNER_FRAME = "inner-frame"
    CORNER_HEARTS = "corner-hearts"
    SPARKLES = "sparkles"


@dataclass(frozen=True)
class CutTransform:
    """Visual effect applied to the overlay of one cut."""

    rotation: float = 0.0
    scale: float = 1.0
    opacity: float = 1.0


PLAIN = CutTransform()

# Indexed by cut: plain, tilted, enlarged, translucent.
CUT_TRANSFORMS: tuple[CutTransform, ...] = (
    PLAIN,
    CutTransform(rotation=-0.1),
    CutTransform(scale=1.2),
    CutTransform(opacity=0.8),
)

GRADIENT_STOPS: tuple[tuple[float, str], ...] = (
    (0.0, "#FFE0F7"),
    (0.3, "#E1BEE7"),
    (0.7, "#BA68C8"),
    (1.0, "#9C27B0"),
)


@dataclass(frozen=True)
class LayoutVariant:
    """Named, fixed configuration of the collage canvas."""

    name: str
    width: int
    height: int
    arrangement: Arrangement
    fit_policy: FitPolicy
    frame_thickness: int
    photo_spacing: int
    title_space: int
    branding_space: int
    # Cell height divided by cell width; None stretches cells to the free area.
    cell_aspect: float | None = 1.0
    show_badges: bool = True
    decorations: frozenset[Decoration] = frozenset(
        {Decoration.INNER_FRAME, Decoration.CORNER_HEARTS}
    )
    background_removal_cuts: frozenset[int] = frozenset(range(CUT_COUNT))
    overlay_anchor: OverlayAnchor = OverlayAnchor.RIGHT_BOTTOM
    overlay_size_ratio: float = 0.45
    cut_transforms: tuple[CutTransform, ...] = CUT_TRANSFORMS
    gradient_stops: tuple[tuple[float, str], ...] = GRADIENT_STOPS
    accent_color: str = "#BA68C8"

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def text_scale(self) -> float:
        """Font scale relative to the 1080px wide reference layout."""
        return self.width / 1080

    def removes_background(self, cut_index: int) -> bool:
        return cut_index in self.background_removal_cuts

    def cut_transform(self, cut_index: int) -> CutTransform:
        if not self.cut_transforms:
            return PLAIN
        return self.cut_transforms[cut_index % len(self.cut_transforms)]


@dataclass(frozen=True)
class Rect:
    """Axis-aligned integer rectangle."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def box(self) -> tuple[int, int, int, int]:
        """Return the Pillow box (left, top, right, bottom)."""
        return (self.x, self.y, self.right, self.bottom)

    def intersects(self, other: "Rect") -> bool:
        return not (
            self.right <= other.x
            or other.right <= self.x
            or self.bottom <= other.y
            or other.bottom <= self.y
        )

    def contains(self, other: "Rect") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )


@dataclass(frozen=True)
class LayoutGeometry:
    """Cell placement computed once per layout variant."""

    canvas_width: int
    canvas_height: int
    frame_thickness: int
    photo_spacing: int
    cell_width: int
    cell_height: int
    cells: tuple[Rect, ...] = field(default_factory=tuple)

    @property
    def inner_area(self) -> Rect:
        return Rect(
            self.frame_thickness,
            self.frame_thickness,
            self.canvas_width - self.frame_thickness * 2,
            self.canvas_height - self.frame_thickness * 2,
        )

    @property
    def grid_bottom(self) -> int:
        return max(cell.bottom for cell in self.cells)

    @classmethod
    def from_variant(cls, variant: LayoutVariant) -> "LayoutGeometry":
        """Compute the four cell rectangles for a variant."""
        frame = variant.frame_thickness
        spacing = variant.photo_spacing
        available_width = variant.width - frame * 2
        available_height = (
            variant.height - frame * 2 - variant.title_space - variant.branding_space
        )
        if variant.arrangement == Arrangement.GRID:
            cell_width, cell_height = _grid_cell_size(
                available_width, available_height, spacing, variant.cell_aspect
            )
            columns = 2
        else:
            cell_width, cell_height = _stack_cell_size(
                available_width, available_height, spacing, variant.cell_aspect
            )
            columns = 1
        if cell_width <= 0 or cell_height <= 0:
            raise ValueError(f"Layout {variant.name} leaves no room for photos")

        block_width = columns * cell_width + (columns - 1) * spacing
        origin_x = frame + (available_width - block_width) // 2
        origin_y = frame + variant.title_space
        cells = []
        for index in range(CUT_COUNT):
            row, col = divmod(index, columns)
            cells.append(
                Rect(
                    origin_x + col * (cell_width + spacing),
                    origin_y + row * (cell_height + spacing),
                    cell_width,
                    cell_height,
                )
            )
        return cls(
            canvas_width=variant.width,
            canvas_height=variant.height,
            frame_thickness=frame,
            photo_spacing=spacing,
            cell_width=cell_width,
            cell_height=cell_height,
            cells=tuple(cells),
        )


def _grid_cell_size(
    available_width: int, available_height: int, spacing: int, aspect: float | None
) -> tuple[int, int]:
    cell_width = (available_width - spacing) // 2
    max_height = (available_height - spacing) // 2
    if aspect is None:
        return cell_width, max_height
    cell_height = round(cell_width * aspect)
    if cell_height > max_height:
        cell_height = max_height
        cell_width = min(cell_width, int(cell_height / aspect))
    return cell_width, cell_height


def _stack_cell_size(
    available_width: int, available_height: int, spacing: int, aspect: float | None
) -> tuple[int, int]:
    cell_height = (available_height - spacing * (CUT_COUNT - 1)) // CUT_COUNT
    if aspect is None:
        return available_width, cell_height
    cell_height = min(cell_height, int(available_width * aspect))
    return min(available_width, int(cell_height / aspect)), cell_height


LAYOUT_VARIANTS: dict[str, LayoutVariant] = {
    variant.name: variant
    for variant in (
        # Full-screen 9:16 phone layout; square cells cropped to fill.
        LayoutVariant(
            name="grid-1080x1920",
            width=1080,
            height=1920,
            arrangement=Arrangement.GRID,
            fit_policy=FitPolicy.FILL,
            frame_thickness=16,
            photo_spacing=8,
            title_space=96,
            branding_space=72,
            decorations=frozenset(Decoration),
        ),
        # Print-style 2:3 card; portrait cells, photos letterboxed.
        LayoutVariant(
            name="grid-800x1200",
            width=800,
            height=1200,
            arrangement=Arrangement.GRID,
            fit_policy=FitPolicy.FIT,
            frame_thickness=24,
            photo_spacing=12,
            title_space=80,
            branding_space=72,
            cell_aspect=1.25,
            background_removal_cuts=frozenset({0}),
        ),
        # Classic photo strip; wide cells, photos letterboxed.
        LayoutVariant(
            name="stack-600x800",
            width=600,
            height=800,
            arrangement=Arrangement.STACK,
            fit_policy=FitPolicy.FIT,
            frame_thickness=12,
            photo_spacing=6,
            title_space=48,
            branding_space=48,
            cell_aspect=None,
            background_removal_cuts=frozenset({0}),
            overlay_anchor=OverlayAnchor.LEFT_BOTTOM,
            overlay_size_ratio=0.8,
            cut_transforms=(PLAIN,),
        ),
        # Thumbnail card without a title; no background removal.
        LayoutVariant(
            name="mini-328x478",
            width=328,
            height=478,
            arrangement=Arrangement.GRID,
            fit_policy=FitPolicy.FILL,
            frame_thickness=8,
            photo_spacing=4,
            title_space=0,
            branding_space=40,
            decorations=frozenset({Decoration.CORNER_HEARTS}),
            background_removal_cuts=frozenset(),
        ),
    )
}

DEFAULT_LAYOUT = "grid-1080x1920"


def get_layout(name: str) -> LayoutVariant:
    """Return a layout variant by name."""
    try:
        return LAYOUT_VARIANTS[name]
    except KeyError:
        raise KeyError(f"Unknown layout variant: {name}") from None
