"""Catalog Schemas — books, lyrics, photo galleries, shows, texts, clips and messages.

Invariants:
    - Create models enforce required fields; Update models make every field optional
    - File references are ObjectId strings; `cover: null` on update detaches the cover
    - Clip URLs must be YouTube watch or short links
"""

import re
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from backstage.schemas.common import EmailStr, ObjectIdStr, PublicationFields

YOUTUBE_URL = re.compile(
    r"^(https?://)?(www\.|m\.)?(youtube\.com/watch\?v=|youtu\.be/)[\w-]{11}(&.+)?$",
    re.IGNORECASE,
)

TitleStr = Annotated[str, Field(min_length=1, max_length=300)]
UrlStr = Annotated[str, Field(pattern=r"^https?://\S+$", max_length=2048)]


# --- Books --------------------------------------------------------------------

class BookFields(BaseModel):
    author: str | None = None
    info: str | None = None
    publishing_company: str | None = None
    release_date: str | None = None
    ISBN: str | None = None
    cover: ObjectIdStr | None = None
    published_at: datetime | None = None


class BookCreate(BookFields):
    title: TitleStr


class BookUpdate(BookFields):
    title: TitleStr | None = None


# --- Lyrics -------------------------------------------------------------------

class LyricFields(BaseModel):
    lyric: str | None = None
    composers: str | None = None
    album: str | None = None
    year: str | None = None
    published_at: datetime | None = None


class LyricCreate(LyricFields):
    title: TitleStr


class LyricUpdate(LyricFields):
    title: TitleStr | None = None


# --- Photo galleries ----------------------------------------------------------

class PhotoFields(PublicationFields):
    images: list[ObjectIdStr] | None = None
    description: str | None = None
    album: str | None = None
    date: str | None = None
    location: str | None = None


class PhotoCreate(PhotoFields):
    title: TitleStr


class PhotoUpdate(PhotoFields):
    title: TitleStr | None = None


# --- Shows --------------------------------------------------------------------

class ShowFields(BaseModel):
    time: str | None = None
    state: str | None = None
    country: str | None = None
    address: str | None = None
    ticket_url: UrlStr | None = None
    description: str | None = None
    cover: ObjectIdStr | None = None
    published_at: datetime | None = None


class ShowCreate(ShowFields):
    title: TitleStr
    date: datetime
    venue: str = Field(min_length=1, max_length=300)
    city: str = Field(min_length=1, max_length=120)


class ShowUpdate(ShowFields):
    title: TitleStr | None = None
    date: datetime | None = None
    venue: str | None = Field(None, min_length=1, max_length=300)
    city: str | None = Field(None, min_length=1, max_length=120)


# --- Texts --------------------------------------------------------------------

class TextFields(BaseModel):
    excerpt: str | None = None
    category: str | None = None
    author: str | None = None
    cover: ObjectIdStr | None = None
    published_at: datetime | None = None


class TextCreate(TextFields):
    title: TitleStr
    content: str = Field(min_length=1)


class TextUpdate(TextFields):
    title: TitleStr | None = None
    content: str | None = Field(None, min_length=1)


# --- Clips --------------------------------------------------------------------

class ClipFields(BaseModel):
    info: str | None = None
    cover: list[ObjectIdStr] | None = None
    published_at: datetime | None = None

    @field_validator("url", check_fields=False)
    @classmethod
    def validate_youtube_url(cls, v: str | None) -> str | None:
        if v is not None and not YOUTUBE_URL.match(v):
            raise ValueError("url must be a YouTube video URL")
        return v


class ClipCreate(ClipFields):
    title: TitleStr
    url: str


class ClipUpdate(ClipFields):
    title: TitleStr | None = None
    url: str | None = None


# --- Fan messages -------------------------------------------------------------

class MessageCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    city: str = Field(min_length=1, max_length=120)
    state: str = Field(min_length=1, max_length=120)
    message: str = Field(min_length=1)
    response: str | None = None
    publicada: bool | None = None


class MessageReply(BaseModel):
    """Only the admin's reply can change once a message exists."""
    response: str | None = None
