"""Media Library Routes — filtered listing of uploaded files and host usage."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import ListParams, list_params, require_admin
from backstage.core.media_library import DateRange, MediaType, SizeBucket, media_filter
from backstage.infrastructure.database import get_db
from backstage.infrastructure.media_host import get_media_host
from backstage.services import uploads
from backstage.services.documents import utcnow
from backstage.services.uploads import MediaHost

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/media", tags=["media"])

SORT_FIELDS = ("createdAt", "name", "size")


@router.get("")
async def list_media(
    params: ListParams = Depends(list_params),
    type_: MediaType = Query(MediaType.ALL, alias="type"),
    date_range: DateRange = Query(DateRange.ALL),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    size: SizeBucket = Query(SizeBucket.ALL),
    include_deleted: bool = Query(False),
    db: AsyncDatabase = Depends(get_db),
    _: dict = Depends(require_admin),
):
    query = media_filter(
        utcnow(),
        search=params.search,
        media_type=type_,
        date_range=date_range,
        date_from=date_from,
        date_to=date_to,
        size=size,
        include_deleted=include_deleted,
    )
    return await uploads.list_media(
        db, query, params.sort_spec(SORT_FIELDS), params.page, params.page_size,
    )


@router.get("/usage")
async def get_usage(
    host: MediaHost = Depends(get_media_host),
    _: dict = Depends(require_admin),
):
    return await uploads.media_usage(host)
