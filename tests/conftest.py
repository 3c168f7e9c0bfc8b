"""Shared test fixtures."""

import struct
import zlib
from dataclasses import dataclass, field
from io import BytesIO

import numpy as np
import pytest
from PIL import Image, ImageDraw

from anishot.config import Settings
from anishot.containers import AppContainer, configured_layouts
from anishot.domain.characters import Character
from anishot.domain.errors import AssetUnavailable
from anishot.services.backgrounds import BackgroundService
from anishot.services.catalog import SAMPLE_CHARACTERS, CharacterCatalog
from anishot.services.overlays import AssetClient, OverlayService
from anishot.services.segmentation import (
    LazyModelHandle,
    SegmentationModel,
    SegmentationService,
)

PHOTO_COLOR = (30, 120, 200)
LEVI: Character = SAMPLE_CHARACTERS[0]


@dataclass
class FakeSegmentationModel(SegmentationModel):
    """Fake model that marks the central half of the frame as the person."""

    calls: int = 0
    closed: bool = False

    def close(self) -> None:
        self.closed = True

    def predict(self, rgb: np.ndarray) -> np.ndarray:
        self.calls += 1
        height, width = rgb.shape[:2]
        confidence = np.zeros((height, width), dtype=np.float32)
        confidence[height // 4 : 3 * height // 4, width // 4 : 3 * width // 4] = 0.9
        return confidence


class FailingSegmentationModel(SegmentationModel):
    """Fake model whose inference always raises."""

    def predict(self, rgb: np.ndarray) -> np.ndarray:
        raise RuntimeError("inference exploded")


@dataclass
class CountingLoader:
    """Model loader that records how many times it ran."""

    model: SegmentationModel = field(default_factory=FakeSegmentationModel)
    error: Exception | None = None
    calls: int = 0

    def __call__(self) -> SegmentationModel:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.model


@dataclass
class InMemoryAssetClient(AssetClient):
    """Asset client serving bytes from a dict and recording requests."""

    assets: dict[str, bytes] = field(default_factory=dict)
    requests: list[str] = field(default_factory=list)

    async def fetch(self, url: str) -> bytes:
        self.requests.append(url)
        if url not in self.assets:
            raise AssetUnavailable(f"missing asset {url}")
        return self.assets[url]

    async def close(self) -> None:
        return None


def make_photo(
    width: int = 640, height: int = 480, color: tuple[int, int, int] = PHOTO_COLOR
) -> Image.Image:
    return Image.new("RGB", (width, height), color)


def png_bytes(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def overlay_png(color: tuple[int, int, int, int] = (255, 0, 0, 255)) -> bytes:
    """A 64x64 transparent square with an opaque disc in the middle."""
    image = Image.new("RGBA", (64, 64), (0, 0, 0, 0))
    ImageDraw.Draw(image).ellipse((8, 8, 56, 56), fill=color)
    return png_bytes(image)


def oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """A PNG whose header declares a size past Pillow's decompression bomb limit."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        crc = struct.pack(">I", zlib.crc32(kind + data))
        return struct.pack(">I", len(data)) + kind + data + crc

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", b"")
        + chunk(b"IEND", b"")
    )


def model_service(
    model: SegmentationModel | None = None, error: Exception | None = None
) -> SegmentationService:
    loader = CountingLoader(model=model or FakeSegmentationModel(), error=error)
    return SegmentationService(handle=LazyModelHandle(loader=loader))


@pytest.fixture
def settings() -> Settings:
    return Settings(asset_root="/tmp/anishot-assets")


@pytest.fixture
def asset_client() -> InMemoryAssetClient:
    return InMemoryAssetClient(
        assets={
            "/characters/levi.png": overlay_png((255, 0, 0, 255)),
            "/characters/levi2.png": overlay_png((0, 255, 0, 255)),
            "/characters/levi3.png": overlay_png((0, 0, 255, 255)),
        }
    )


@pytest.fixture
def overlay_service(asset_client: InMemoryAssetClient) -> OverlayService:
    return OverlayService(asset_client)


@pytest.fixture
def segmentation_service() -> SegmentationService:
    return model_service()


@pytest.fixture
def background_service(
    segmentation_service: SegmentationService,
) -> BackgroundService:
    return BackgroundService(segmentation_service)


@pytest.fixture
def container(
    settings: Settings,
    segmentation_service: SegmentationService,
    background_service: BackgroundService,
    overlay_service: OverlayService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        catalog=CharacterCatalog.default(),
        layouts=configured_layouts(settings),
        segmentation_service=segmentation_service,
        background_service=background_service,
        overlay_service=overlay_service,
        close_resources=close_resources,
    )
