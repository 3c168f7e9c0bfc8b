"""Tests for asset and model adapters."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

import httpx
import numpy as np
import pytest

from anishot.adapters.file_asset_client import FileAssetClient
from anishot.adapters.httpx_asset_client import HttpxAssetClient
from anishot.adapters.mediapipe_segmenter import MediaPipeSegmenter
from anishot.domain.errors import AssetUnavailable


def test_httpx_asset_client_fetches_relative_to_base() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://cdn.example.com/static/characters/levi.png"
        return httpx.Response(200, content=b"png-bytes")

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = HttpxAssetClient(
        base_url="https://cdn.example.com/static/", http_client=async_client
    )

    payload = asyncio.run(client.fetch("characters/levi.png"))

    assert payload == b"png-bytes"


def test_httpx_asset_client_maps_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = HttpxAssetClient(base_url="https://cdn.example.com", http_client=async_client)

    with pytest.raises(AssetUnavailable):
        asyncio.run(client.fetch("/characters/missing.png"))


def test_file_asset_client_reads_from_root(tmp_path: Path) -> None:
    (tmp_path / "characters").mkdir()
    (tmp_path / "characters" / "levi.png").write_bytes(b"levi")
    client = FileAssetClient(tmp_path)

    assert asyncio.run(client.fetch("/characters/levi.png")) == b"levi"


def test_file_asset_client_missing_file(tmp_path: Path) -> None:
    client = FileAssetClient(tmp_path)

    with pytest.raises(AssetUnavailable):
        asyncio.run(client.fetch("/characters/nobody.png"))


def test_file_asset_client_blocks_path_traversal(tmp_path: Path) -> None:
    root = tmp_path / "public"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("secret")
    client = FileAssetClient(root)

    with pytest.raises(AssetUnavailable):
        asyncio.run(client.fetch("/../secret.txt"))


@dataclass
class _FakeMask:
    values: np.ndarray

    def numpy_view(self) -> np.ndarray:
        return self.values


@dataclass
class _FakeResult:
    confidence_masks: list[_FakeMask]


class _FakeImageSegmenter:
    def __init__(self, masks: list[np.ndarray]) -> None:
        self.masks = masks
        self.images: list[object] = []
        self.closed = False

    def segment(self, image: object) -> _FakeResult:
        self.images.append(image)
        return _FakeResult([_FakeMask(mask) for mask in self.masks])

    def close(self) -> None:
        self.closed = True


def test_mediapipe_segmenter_returns_single_confidence_mask() -> None:
    person = np.full((4, 6), 0.9, dtype=np.float32)
    fake = _FakeImageSegmenter([person])
    segmenter = MediaPipeSegmenter(segmenter=fake)

    confidence = segmenter.predict(np.zeros((4, 6, 3), dtype=np.uint8))

    assert confidence.shape == (4, 6)
    assert np.allclose(confidence, 0.9)
    assert len(fake.images) == 1


def test_mediapipe_segmenter_inverts_background_class() -> None:
    background = np.full((4, 6), 0.25, dtype=np.float32)
    fake = _FakeImageSegmenter([background, 1.0 - background])
    segmenter = MediaPipeSegmenter(segmenter=fake)

    confidence = segmenter.predict(np.zeros((4, 6, 3), dtype=np.uint8))

    assert np.allclose(confidence, 0.75)
    segmenter.close()
    assert fake.closed


def test_mediapipe_segmenter_without_masks_raises() -> None:
    segmenter = MediaPipeSegmenter(segmenter=_FakeImageSegmenter([]))

    with pytest.raises(RuntimeError):
        segmenter.predict(np.zeros((4, 6, 3), dtype=np.uint8))
