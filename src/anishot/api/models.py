"""Request and response models for the HTTP API."""

from pydantic import BaseModel, Field


class CollageRequest(BaseModel):
    """Four captured photos plus the chosen character and layout."""

    character_id: str
    layout: str | None = None
    photos: list[str] = Field(description="Base64 data URLs in capture order")


class CollageResponse(BaseModel):
    """Finished collage returned inline."""

    filename: str
    width: int
    height: int
    data_url: str


class PreviewRequest(BaseModel):
    """A live camera frame to decorate with a cut's overlay."""

    character_id: str
    cut_index: int = Field(default=0, ge=0, le=3)
    frame: str
    size: int | None = Field(default=None, gt=0)


class PreviewResponse(BaseModel):
    data_url: str


class CharacterOut(BaseModel):
    id: str
    name: str
    thumbnail_url: str
    overlay_images: list[str]


class LayoutOut(BaseModel):
    name: str
    width: int
    height: int
    arrangement: str
    fit_policy: str
    background_removal_cuts: list[int]
