"""Shared schema types — identifiers, publication fields and list envelopes."""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ObjectIdStr = Annotated[str, Field(pattern=r"^[a-fA-F0-9]{24}$")]
EmailStr = Annotated[
    str, Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=254),
]
StatusLiteral = Literal["draft", "published"]


class PublicationFields(BaseModel):
    """Publication state accepted on status-aware resources."""
    status: StatusLiteral | None = None
    publishedAt: datetime | None = None
    published_at: datetime | None = None


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class Page(BaseModel):
    """List envelope returned by every collection endpoint."""
    model_config = ConfigDict(extra="allow")

    data: list[dict[str, Any]]
    pagination: Pagination


class MessageResponse(BaseModel):
    message: str
