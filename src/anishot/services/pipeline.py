"""Pipeline state machine: capture four cuts, process them, build the collage."""

import asyncio
import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum

from PIL import Image

from anishot.domain.characters import Character
from anishot.domain.errors import FATAL_ERRORS, InvalidPhotoCount
from anishot.domain.layouts import LayoutVariant
from anishot.domain.photos import CUT_COUNT, CapturedPhoto, CollageResult
from anishot.services.backgrounds import BackgroundService
from anishot.services.collage import build_collage
from anishot.services.overlays import OverlayService

DEFAULT_APP_TAG = "anishot-4cut"

_logger = logging.getLogger(__name__)


class PipelineState(StrEnum):
    """Lifecycle of one four-cut generation."""

    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    SEGMENTING = "SEGMENTING"
    REPLACING = "REPLACING"
    COMPOSITING = "COMPOSITING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class _Superseded(Exception):
    """The run was reset while it was in flight."""


@dataclass
class CollagePipeline:
    """Collects four captures for a character and turns them into a collage.

    One pipeline owns one generation at a time. ``reset`` abandons any run in
    flight: its steps finish, but their results are dropped.
    """

    character: Character
    variant: LayoutVariant
    background_service: BackgroundService
    overlay_service: OverlayService
    app_tag: str = DEFAULT_APP_TAG
    stamp_date: date | None = None
    rng: random.Random | None = None
    state: PipelineState = PipelineState.IDLE
    photos: list[CapturedPhoto] = field(default_factory=list)
    result: CollageResult | None = None
    error: Exception | None = None
    _run_token: int = field(default=0, init=False, repr=False)

    async def capture(
        self, image: Image.Image, timestamp: datetime | None = None
    ) -> PipelineState:
        """Record the next photo; the fourth one triggers generation."""
        if self.state not in {PipelineState.IDLE, PipelineState.CAPTURING}:
            raise InvalidPhotoCount(len(self.photos) + 1, CUT_COUNT)
        photo = CapturedPhoto(
            id=len(self.photos) + 1,
            image=image,
            timestamp=timestamp or datetime.now(tz=UTC),
        )
        self.photos.append(photo)
        self.state = PipelineState.CAPTURING
        if len(self.photos) == CUT_COUNT:
            await self._generate()
        return self.state

    def reset(self) -> None:
        """Drop captured photos and any result, returning to IDLE."""
        self._run_token += 1
        self.photos = []
        self.result = None
        self.error = None
        self.state = PipelineState.IDLE

    async def _generate(self) -> None:
        token = self._run_token
        try:
            processed = [await self._process(photo, token) for photo in self.photos]
            self._transition(PipelineState.COMPOSITING, token)
            image_bytes = await asyncio.to_thread(
                build_collage,
                processed,
                self.variant,
                stamp_date=self.stamp_date,
                rng=self.rng,
            )
            self._check_current(token)
        except _Superseded:
            _logger.info("Discarding result of a reset collage run")
            return
        except Exception as exc:
            if token != self._run_token:
                return
            if isinstance(exc, FATAL_ERRORS):
                _logger.exception("Collage generation failed")
            else:
                _logger.exception("Unexpected error during collage generation")
            self.state = PipelineState.FAILED
            self.error = exc
            self.photos = []
            raise

        last = self.photos[-1]
        self.result = CollageResult(
            image_bytes=image_bytes,
            width=self.variant.width,
            height=self.variant.height,
            filename=download_filename(
                self.app_tag, self.character.name, last.timestamp
            ),
        )
        self.state = PipelineState.COMPLETE

    async def _process(self, photo: CapturedPhoto, token: int) -> Image.Image:
        image = photo.image
        cut_index = photo.cut_index
        if self.variant.removes_background(cut_index):
            self._transition(PipelineState.SEGMENTING, token)
            mask = await self.background_service.segment(image)
            self._transition(PipelineState.REPLACING, token)
            image = await asyncio.to_thread(self.background_service.apply, image, mask)
        self._transition(PipelineState.COMPOSITING, token)
        image = await self.overlay_service.compose_for_collage(
            image, self.character, cut_index, self.variant
        )
        self._check_current(token)
        return image

    def _transition(self, state: PipelineState, token: int) -> None:
        self._check_current(token)
        self.state = state

    def _check_current(self, token: int) -> None:
        if token != self._run_token:
            raise _Superseded


async def generate_collage(  # noqa: PLR0913
    images: Sequence[Image.Image],
    *,
    character: Character,
    variant: LayoutVariant,
    background_service: BackgroundService,
    overlay_service: OverlayService,
    app_tag: str = DEFAULT_APP_TAG,
) -> CollageResult:
    """Run four images through a fresh pipeline and return the collage."""
    if len(images) != CUT_COUNT:
        raise InvalidPhotoCount(len(images), CUT_COUNT)
    pipeline = CollagePipeline(
        character=character,
        variant=variant,
        background_service=background_service,
        overlay_service=overlay_service,
        app_tag=app_tag,
    )
    for image in images:
        await pipeline.capture(image)
    if pipeline.result is None:
        raise RuntimeError("Collage pipeline finished without a result")
    return pipeline.result


def download_filename(app_tag: str, character_name: str, timestamp: datetime) -> str:
    """Build the suggested download name ``{tag}-{name}-{unix-ts}.png``."""
    safe_name = "-".join(character_name.split()) or "character"
    return f"{app_tag}-{safe_name}-{int(timestamp.timestamp())}.png"
