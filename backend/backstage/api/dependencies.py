"""API Dependencies — authentication, role checks and shared list parameters.

Invariants:
    - A bearer token resolves to a stored admin or the request fails with 401
    - Unapproved admins are rejected (403) even with a valid token
    - Super-admin routes reject plain admins (403)
    - Public lists show only published documents unless an admin asks for more

Usage:
    @router.post("")
    async def create(body: BookCreate, admin: dict = Depends(require_admin)):
        ...
"""

import logging
from dataclasses import dataclass
from typing import Literal

from bson import ObjectId
from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.asynchronous.database import AsyncDatabase

from backstage.config import Settings, get_settings
from backstage.core.domain_types import AdminRole, Collection
from backstage.core.errors import AuthenticationError, PermissionDeniedError
from backstage.core.normalize import is_object_id
from backstage.core.pagination import resolve_sort
from backstage.core.publication import ListStatus
from backstage.infrastructure.database import get_db
from backstage.infrastructure.security import decode_access_token
from backstage.services.accounts import is_approved
from backstage.services.documents import collection

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> dict | None:
    """Admin for the bearer token, or None when no token was sent."""
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials, settings)
    admin_id = payload["sub"]
    if not is_object_id(admin_id):
        raise AuthenticationError("Invalid token")
    admin = await collection(db, Collection.ADMINS).find_one({"_id": ObjectId(admin_id)})
    if admin is None:
        raise AuthenticationError("Admin not found")

    role = admin.get("role") or AdminRole.ADMIN.value
    if role != AdminRole.SUPER_ADMIN.value and not is_approved(admin):
        raise PermissionDeniedError("Account pending approval")
    logger.debug(f"Admin authenticated: {admin['email']}")
    return admin


async def require_admin(admin: dict | None = Depends(get_optional_admin)) -> dict:
    if admin is None:
        raise AuthenticationError()
    return admin


async def require_super_admin(admin: dict = Depends(require_admin)) -> dict:
    if admin.get("role") != AdminRole.SUPER_ADMIN.value:
        raise PermissionDeniedError("Super admin role required")
    return admin


@dataclass
class ListParams:
    page: int
    page_size: int
    search: str | None
    sort: str | None
    order: Literal["asc", "desc"] | None

    def sort_spec(
        self, allowed: tuple[str, ...], default_field: str = "createdAt", default_order: str = "desc",
    ) -> list[tuple[str, int]]:
        return resolve_sort(self.sort, self.order, allowed, default_field, default_order)


def list_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    search: str | None = Query(None, max_length=200),
    sort: str | None = Query(None, max_length=50),
    order: Literal["asc", "desc"] | None = Query(None),
) -> ListParams:
    return ListParams(page, page_size, search.strip() if search else None, sort, order)


def resolve_list_status(
    requested: ListStatus | None, admin: dict | None, default: ListStatus = ListStatus.PUBLISHED,
) -> ListStatus:
    """Effective status filter; anything but published needs an admin token."""
    status = requested or default
    if status is not ListStatus.PUBLISHED and admin is None:
        raise AuthenticationError("Admin token required to list unpublished content")
    return status
