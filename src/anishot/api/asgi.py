"""ASGI entrypoint for the AniShot API."""

from anishot.api.app import create_app
from anishot.containers import build_container

app = create_app(build_container())
