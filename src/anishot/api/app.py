"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from PIL import Image

from anishot.api.models import (
    CharacterOut,
    CollageRequest,
    CollageResponse,
    LayoutOut,
    PreviewRequest,
    PreviewResponse,
)
from anishot.app_logging import configure_logging
from anishot.containers import AppContainer
from anishot.domain.characters import Character
from anishot.domain.errors import CollageError, InvalidPhotoCount
from anishot.domain.layouts import LayoutVariant
from anishot.services.encoding import (
    decode_data_url,
    decode_image,
    encode_png,
    to_data_url,
)
from anishot.services.pipeline import generate_collage

_UNPROCESSABLE = 422


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/characters")
    async def list_characters(request: Request) -> dict[str, list[CharacterOut]]:
        """List selectable characters."""
        state_container: AppContainer = request.app.state.container
        return {
            "characters": [
                _character_out(character)
                for character in state_container.catalog.list_characters()
            ]
        }

    @app.get("/layouts")
    async def list_layouts(request: Request) -> dict[str, list[LayoutOut]]:
        """List available collage layouts."""
        state_container: AppContainer = request.app.state.container
        return {
            "layouts": [
                _layout_out(variant) for variant in state_container.layouts.values()
            ]
        }

    @app.post("/collages")
    async def create_collage(
        payload: CollageRequest, request: Request
    ) -> CollageResponse:
        """Build a four-cut collage from captured photos."""
        state_container: AppContainer = request.app.state.container
        character = _require_character(state_container, payload.character_id)
        variant = _require_layout(
            state_container,
            payload.layout or state_container.settings.default_layout,
        )
        images = [
            await _decode_upload(photo, index)
            for index, photo in enumerate(payload.photos)
        ]
        try:
            result = await generate_collage(
                images,
                character=character,
                variant=variant,
                background_service=state_container.background_service,
                overlay_service=state_container.overlay_service,
                app_tag=state_container.settings.app_tag,
            )
        except InvalidPhotoCount as exc:
            raise HTTPException(status_code=_UNPROCESSABLE, detail=str(exc)) from exc
        except CollageError as exc:
            logger.exception("Collage generation failed")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
            ) from exc
        return CollageResponse(
            filename=result.filename,
            width=result.width,
            height=result.height,
            data_url=result.data_url,
        )

    @app.post("/previews")
    async def create_preview(
        payload: PreviewRequest, request: Request
    ) -> PreviewResponse:
        """Overlay a character onto a live camera frame."""
        state_container: AppContainer = request.app.state.container
        character = _require_character(state_container, payload.character_id)
        frame = await _decode_upload(payload.frame, 0)
        composed = await state_container.overlay_service.preview(
            frame, character, payload.cut_index, size=payload.size
        )
        png_bytes = await asyncio.to_thread(encode_png, composed)
        return PreviewResponse(data_url=to_data_url(png_bytes))

    return app


def _require_character(container: AppContainer, character_id: str) -> Character:
    character = container.catalog.get(character_id)
    if character is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown character: {character_id}",
        )
    return character


def _require_layout(container: AppContainer, name: str) -> LayoutVariant:
    variant = container.layouts.get(name)
    if variant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown layout: {name}",
        )
    return variant


async def _decode_upload(value: str, index: int) -> Image.Image:
    try:
        return await asyncio.to_thread(decode_image, decode_data_url(value))
    except ValueError as exc:
        raise HTTPException(
            status_code=_UNPROCESSABLE,
            detail=f"Photo {index + 1} is not a valid image",
        ) from exc


def _character_out(character: Character) -> CharacterOut:
    return CharacterOut(
        id=character.id,
        name=character.name,
        thumbnail_url=character.thumbnail_url,
        overlay_images=list(character.overlay_images),
    )


def _layout_out(variant: LayoutVariant) -> LayoutOut:
    return LayoutOut(
        name=variant.name,
        width=variant.width,
        height=variant.height,
        arrangement=variant.arrangement.value,
        fit_policy=variant.fit_policy.value,
        background_removal_cuts=sorted(variant.background_removal_cuts),
    )
