"""Dependency container wiring for the application."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from pathlib import Path

from anishot.adapters.file_asset_client import FileAssetClient
from anishot.adapters.httpx_asset_client import HttpxAssetClient
from anishot.adapters.mediapipe_segmenter import MediaPipeSegmenter
from anishot.config import Settings, parse_cut_indices
from anishot.domain.layouts import LAYOUT_VARIANTS, LayoutVariant
from anishot.services.backgrounds import BackgroundService
from anishot.services.catalog import CharacterCatalog
from anishot.services.overlays import OverlayService
from anishot.services.segmentation import LazyModelHandle, SegmentationService

DEFAULT_ASSET_ROOT = Path("public")


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog: CharacterCatalog
    layouts: dict[str, LayoutVariant]
    segmentation_service: SegmentationService
    background_service: BackgroundService
    overlay_service: OverlayService
    close_resources: Callable[[], Awaitable[None]]


def configured_layouts(settings: Settings) -> dict[str, LayoutVariant]:
    """Return the layout variants with env overrides applied."""
    cuts = parse_cut_indices(settings.background_removal_cuts)
    if cuts is None:
        return dict(LAYOUT_VARIANTS)
    return {
        name: replace(variant, background_removal_cuts=cuts)
        for name, variant in LAYOUT_VARIANTS.items()
    }


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    model_handle = LazyModelHandle(
        loader=lambda: MediaPipeSegmenter.create(
            resolved_settings.segmentation_model_path
        )
    )
    segmentation_service = SegmentationService(
        handle=model_handle,
        threshold=resolved_settings.segmentation_threshold,
    )
    background_service = BackgroundService(segmentation_service)
    if resolved_settings.asset_base_url and not resolved_settings.asset_root:
        asset_client: FileAssetClient | HttpxAssetClient = HttpxAssetClient.create(
            resolved_settings.asset_base_url,
            timeout_seconds=resolved_settings.asset_timeout_seconds,
        )
    else:
        asset_client = FileAssetClient(
            Path(resolved_settings.asset_root or DEFAULT_ASSET_ROOT)
        )
    overlay_service = OverlayService(asset_client)

    async def close_resources() -> None:
        await asset_client.close()
        await asyncio.to_thread(model_handle.close)

    return AppContainer(
        settings=resolved_settings,
        catalog=CharacterCatalog.default(),
        layouts=configured_layouts(resolved_settings),
        segmentation_service=segmentation_service,
        background_service=background_service,
        overlay_service=overlay_service,
        close_resources=close_resources,
    )
