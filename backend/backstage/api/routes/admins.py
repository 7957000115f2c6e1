"""Admin Management Routes — super-admin approval and removal of accounts."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import require_super_admin
from backstage.infrastructure.database import get_db
from backstage.schemas.common import MessageResponse
from backstage.services import accounts

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admins", tags=["admins"])


@router.get("")
async def list_admins(
    status: Literal["pending", "approved"] | None = Query(None),
    db: AsyncDatabase = Depends(get_db),
    _: dict = Depends(require_super_admin),
):
    admins = await accounts.list_admins(db, status)
    return {"data": [accounts.format_admin(admin) for admin in admins]}


@router.patch("/{admin_id}/approve")
async def approve_admin(
    admin_id: str,
    db: AsyncDatabase = Depends(get_db),
    actor: dict = Depends(require_super_admin),
):
    admin = await accounts.approve_admin(db, admin_id, actor["_id"])
    return accounts.format_admin(admin)


@router.delete("/{admin_id}", response_model=MessageResponse)
async def delete_admin(
    admin_id: str,
    db: AsyncDatabase = Depends(get_db),
    actor: dict = Depends(require_super_admin),
):
    await accounts.delete_admin(db, admin_id, actor["_id"])
    return MessageResponse(message="Admin removed")
