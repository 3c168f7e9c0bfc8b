"""Tests for the HTTP API."""

import base64
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from anishot.api.app import create_app
from anishot.domain.errors import EncodeFailure
from anishot.services.encoding import to_data_url
from tests.conftest import InMemoryAssetClient, make_photo, oversized_png, png_bytes


def _photo_url(width: int = 64, height: int = 48) -> str:
    return to_data_url(png_bytes(make_photo(width, height)))


def _decode_response_image(data_url: str) -> Image.Image:
    header, _, payload = data_url.partition(",")
    assert header == "data:image/png;base64"
    return Image.open(BytesIO(base64.b64decode(payload)))


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_lists_sample_characters(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/characters")

    assert response.status_code == 200
    characters = response.json()["characters"]
    assert [character["name"] for character in characters] == [
        "Levi",
        "Cheerful Puppy",
        "Mysterious Rabbit",
    ]
    assert characters[0]["overlay_images"][2] == "/characters/levi3.png"


def test_lists_layouts(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/layouts")

    assert response.status_code == 200
    layouts = {layout["name"]: layout for layout in response.json()["layouts"]}
    assert set(layouts) == {
        "grid-1080x1920",
        "grid-800x1200",
        "stack-600x800",
        "mini-328x478",
    }
    assert layouts["grid-800x1200"]["fit_policy"] == "fit"
    assert layouts["grid-800x1200"]["background_removal_cuts"] == [0]
    assert layouts["mini-328x478"]["background_removal_cuts"] == []


def test_create_collage_returns_png(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/collages",
        json={
            "character_id": "char-1",
            "layout": "mini-328x478",
            "photos": [_photo_url() for _ in range(4)],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert (body["width"], body["height"]) == (328, 478)
    assert body["filename"].startswith("anishot-4cut-Levi-")
    assert _decode_response_image(body["data_url"]).size == (328, 478)


def test_create_collage_uses_default_layout(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/collages",
        json={"character_id": "char-1", "photos": [_photo_url() for _ in range(4)]},
    )

    assert response.status_code == 200
    assert (response.json()["width"], response.json()["height"]) == (1080, 1920)


def test_create_collage_rejects_wrong_photo_count(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/collages",
        json={"character_id": "char-1", "photos": [_photo_url() for _ in range(3)]},
    )

    assert response.status_code == 422
    assert "Expected 4 photos, got 3" in response.json()["detail"]


def test_create_collage_unknown_character(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/collages",
        json={"character_id": "char-9", "photos": [_photo_url() for _ in range(4)]},
    )

    assert response.status_code == 404


def test_create_collage_unknown_layout(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/collages",
        json={
            "character_id": "char-1",
            "layout": "poster-a1",
            "photos": [_photo_url() for _ in range(4)],
        },
    )

    assert response.status_code == 404


def test_create_collage_rejects_invalid_base64(container) -> None:
    client = TestClient(create_app(container))
    photos = [_photo_url() for _ in range(4)]
    photos[1] = "data:image/png;base64,@@not-base64@@"

    response = client.post("/collages", json={"character_id": "char-1", "photos": photos})

    assert response.status_code == 422
    assert response.json()["detail"] == "Photo 2 is not a valid image"


def test_create_collage_encode_failure_is_server_error(
    container, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_build(*args: object, **kwargs: object) -> bytes:
        raise EncodeFailure("encoder crashed")

    monkeypatch.setattr("anishot.services.pipeline.build_collage", broken_build)
    client = TestClient(create_app(container))

    response = client.post(
        "/collages",
        json={
            "character_id": "char-1",
            "layout": "mini-328x478",
            "photos": [_photo_url() for _ in range(4)],
        },
    )

    assert response.status_code == 500
    assert response.json()["detail"] == "encoder crashed"


def test_preview_overlays_frame(container, asset_client: InMemoryAssetClient) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/previews",
        json={"character_id": "char-1", "cut_index": 1, "frame": _photo_url(200, 100)},
    )

    assert response.status_code == 200
    image = _decode_response_image(response.json()["data_url"]).convert("RGBA")
    assert image.size == (200, 100)
    assert image.getpixel((25, 75)) == (0, 255, 0, 255)
    assert asset_client.requests == ["/characters/levi2.png"]


def test_preview_rejects_out_of_range_cut(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/previews",
        json={"character_id": "char-1", "cut_index": 4, "frame": _photo_url()},
    )

    assert response.status_code == 422


def test_create_collage_rejects_oversized_upload(container) -> None:
    client = TestClient(create_app(container))
    photos = [_photo_url() for _ in range(4)]
    photos[2] = to_data_url(oversized_png())

    response = client.post("/collages", json={"character_id": "char-1", "photos": photos})

    assert response.status_code == 422
    assert response.json()["detail"] == "Photo 3 is not a valid image"
