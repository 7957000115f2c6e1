"""Release Schemas — CDs, DVDs and their embedded tracks.

Invariants:
    - Track `_id` present means "update this track", absent means "create"
    - DVD video URLs must be Vimeo pages or YouTube embed links
    - Update models accept any subset of fields; an explicit null clears the field
"""

import re
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from backstage.schemas.common import ObjectIdStr, PublicationFields

VIMEO_URL = re.compile(
    r"^(https?://)?(www\.|player\.)?vimeo\.com/"
    r"(\d+|video/\d+|channels/.+/\d+|groups/.+/videos/\d+)",
    re.IGNORECASE,
)
YOUTUBE_EMBED_URL = re.compile(
    r"^(https?://)?(www\.|m\.)?(youtube\.com/embed/|youtu\.be/)[\w-]+", re.IGNORECASE,
)


def check_video_url(value: str | None) -> str | None:
    if value is None:
        return value
    if not (VIMEO_URL.match(value) or YOUTUBE_EMBED_URL.match(value)):
        raise ValueError("video_url must be a Vimeo or YouTube embed URL")
    return value


# --- Tracks -------------------------------------------------------------------

class CdTrackFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: ObjectIdStr | None = Field(None, alias="_id")
    publishing_company: str | None = None
    composers: str | None = None
    time: str | None = None
    track: ObjectIdStr | None = None
    lyric: ObjectIdStr | None = None
    data_sheet: str | None = None


class CdTrackInput(CdTrackFields):
    name: str = Field(min_length=1, max_length=300)


class CdTrackUpdate(CdTrackFields):
    name: str | None = Field(None, min_length=1, max_length=300)


class DvdTrackFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: ObjectIdStr | None = Field(None, alias="_id")
    composers: str | None = None
    label: str | None = None
    time: str | None = None
    lyric: ObjectIdStr | None = None
    track: ObjectIdStr | None = None


class DvdTrackInput(DvdTrackFields):
    name: str = Field(min_length=1, max_length=300)


class DvdTrackUpdate(DvdTrackFields):
    name: str | None = Field(None, min_length=1, max_length=300)


class TrackOrder(BaseModel):
    """New play order for a release's tracks."""
    order: list[ObjectIdStr]


# --- Releases -----------------------------------------------------------------

class ReleaseFields(PublicationFields):
    company: str | None = None
    release_date: str | None = None
    info: str | None = None
    cover: ObjectIdStr | None = None


class CdCreate(ReleaseFields):
    title: str = Field(min_length=1, max_length=300)
    tracks: list[CdTrackInput] | None = None


class CdUpdate(ReleaseFields):
    title: str | None = Field(None, min_length=1, max_length=300)
    tracks: list[CdTrackInput] | None = None


class DvdCreate(ReleaseFields):
    title: str = Field(min_length=1, max_length=300)
    videoUrl: str = Field(validation_alias=AliasChoices("videoUrl", "video_url"))
    tracks: list[DvdTrackInput] | None = None

    @field_validator("videoUrl")
    @classmethod
    def validate_video_url(cls, v: str | None) -> str | None:
        return check_video_url(v)


class DvdUpdate(ReleaseFields):
    title: str | None = Field(None, min_length=1, max_length=300)
    videoUrl: str | None = Field(None, validation_alias=AliasChoices("videoUrl", "video_url"))
    tracks: list[DvdTrackInput] | None = None

    @field_validator("videoUrl")
    @classmethod
    def validate_video_url(cls, v: str | None) -> str | None:
        return check_video_url(v)
