"""Account Service — administrator registration, login, approval and password reset.

Invariants:
    - Emails are stored lower-case and are unique (409 on conflict)
    - Self-registered admins start with role `admin` and approved=False
    - Records without an `approved` field predate approval and count as approved
    - An unapproved non-super admin cannot log in (403)
    - Password hashes never leave this module
    - A reset request answers the same way whether or not the email exists
    - Reset tokens are single-use; an expired token is deleted when presented

Design Decisions:
    - Settings and mailer are passed in: routes use dependencies, the CLI builds its own
    - Token expiry is checked in Python as well as by the TTL index, which runs
      only about once a minute
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Protocol

from bson import ObjectId
from pymongo.asynchronous.database import AsyncDatabase

from backstage.config import Settings
from backstage.core.domain_types import AdminRole, Collection
from backstage.core.errors import (
    AuthenticationError, ConflictError, InvalidResetTokenError,
    PermissionDeniedError, RequestRejectedError, ResourceNotFoundError,
)
from backstage.core.normalize import normalize_document
from backstage.infrastructure.security import (
    create_access_token, hash_password, new_reset_token, verify_password,
)
from backstage.services.documents import as_utc, collection, find_many, get_or_404, utcnow

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If the email is registered, reset instructions have been sent"


class Mailer(Protocol):
    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None: ...


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_approved(admin: Mapping) -> bool:
    return admin.get("approved", True) is not False


def format_admin(admin: Mapping) -> dict:
    """Public view of an admin record (no password hash)."""
    result = normalize_document({k: v for k, v in admin.items() if k != "password"})
    result["approved"] = is_approved(admin)
    result.setdefault("role", AdminRole.ADMIN.value)
    return result


async def find_admin_by_email(db: AsyncDatabase, email: str) -> dict | None:
    return await collection(db, Collection.ADMINS).find_one({"email": normalize_email(email)})


async def register_admin(
    db: AsyncDatabase, settings: Settings, name: str, email: str, password: str,
) -> dict:
    email = normalize_email(email)
    if await find_admin_by_email(db, email) is not None:
        raise ConflictError("Email already registered")

    now = utcnow()
    admin = {
        "name": name.strip(),
        "email": email,
        "password": hash_password(password, settings.bcrypt_rounds),
        "role": AdminRole.ADMIN.value,
        "approved": False,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await collection(db, Collection.ADMINS).insert_one(admin)
    admin["_id"] = result.inserted_id
    logger.info("Admin registered", extra={"admin_id": str(admin["_id"])})
    return admin


async def authenticate(
    db: AsyncDatabase, settings: Settings, email: str, password: str,
) -> tuple[dict, str]:
    """Verify credentials; returns (admin, access token)."""
    admin = await find_admin_by_email(db, email)
    if admin is None or not verify_password(password, admin.get("password")):
        raise AuthenticationError("Invalid email or password")

    role = admin.get("role") or AdminRole.ADMIN.value
    if role != AdminRole.SUPER_ADMIN.value and not is_approved(admin):
        raise PermissionDeniedError("Account pending approval")

    token = create_access_token(str(admin["_id"]), role, settings)
    logger.info("Admin logged in", extra={"admin_id": str(admin["_id"])})
    return admin, token


async def list_admins(db: AsyncDatabase, status: str | None = None) -> list[dict]:
    query: dict[str, Any] = {}
    if status == "pending":
        query["approved"] = False
    elif status == "approved":
        query["approved"] = {"$ne": False}
    return await find_many(db, Collection.ADMINS, query, sort=[("createdAt", -1)])


async def approve_admin(db: AsyncDatabase, admin_id: Any, approver_id: ObjectId) -> dict:
    admin = await get_or_404(db, Collection.ADMINS, admin_id, "Admin")
    now = utcnow()
    await collection(db, Collection.ADMINS).update_one(
        {"_id": admin["_id"]},
        {"$set": {
            "approved": True,
            "approvedBy": approver_id,
            "approvedAt": now,
            "updatedAt": now,
        }},
    )
    logger.info(
        "Admin approved",
        extra={"admin_id": str(approver_id), "resource_id": str(admin["_id"])},
    )
    return await get_or_404(db, Collection.ADMINS, admin["_id"], "Admin")


async def delete_admin(db: AsyncDatabase, admin_id: Any, actor_id: ObjectId) -> None:
    admin = await get_or_404(db, Collection.ADMINS, admin_id, "Admin")
    if admin["_id"] == actor_id:
        raise RequestRejectedError("You cannot delete your own account")
    await collection(db, Collection.ADMINS).delete_one({"_id": admin["_id"]})
    await collection(db, Collection.PASSWORD_RESET_TOKENS).delete_many({"admin_id": admin["_id"]})
    logger.info(
        "Admin deleted", extra={"admin_id": str(actor_id), "resource_id": str(admin["_id"])},
    )


def _reset_email(name: str, reset_url: str) -> tuple[str, str]:
    html = (
        f"<p>Hello {name},</p>"
        "<p>Use the link below to choose a new password:</p>"
        f'<p><a href="{reset_url}">{reset_url}</a></p>'
    )
    text = f"Hello {name},\n\nUse the link below to choose a new password:\n{reset_url}\n"
    return html, text


async def request_password_reset(
    db: AsyncDatabase, settings: Settings, mailer: Mailer, email: str,
) -> str:
    admin = await find_admin_by_email(db, email)
    if admin is None:
        return RESET_REQUESTED_MESSAGE

    tokens = collection(db, Collection.PASSWORD_RESET_TOKENS)
    await tokens.delete_many({"admin_id": admin["_id"]})
    token = new_reset_token()
    now = utcnow()
    await tokens.insert_one({
        "admin_id": admin["_id"],
        "token": token,
        "expires_at": now + timedelta(minutes=settings.password_reset_token_expire_minutes),
        "createdAt": now,
    })

    reset_url = f"{settings.public_base_url}/auth/forgot-password?token={token}"
    html, text = _reset_email(admin.get("name") or admin["email"], reset_url)
    await mailer.send(admin["email"], "Password reset", html, text)
    logger.info("Password reset requested", extra={"admin_id": str(admin["_id"])})
    return RESET_REQUESTED_MESSAGE


async def reset_password(
    db: AsyncDatabase,
    settings: Settings,
    token: str,
    password: str,
    now: datetime | None = None,
) -> None:
    tokens = collection(db, Collection.PASSWORD_RESET_TOKENS)
    record = await tokens.find_one({"token": token})
    if record is None:
        raise InvalidResetTokenError()
    if as_utc(record["expires_at"]) < (now or utcnow()):
        await tokens.delete_one({"_id": record["_id"]})
        raise InvalidResetTokenError("Token has expired")

    admins = collection(db, Collection.ADMINS)
    admin = await admins.find_one({"_id": record["admin_id"]})
    if admin is None:
        raise ResourceNotFoundError("Admin", str(record["admin_id"]))

    await admins.update_one(
        {"_id": admin["_id"]},
        {"$set": {
            "password": hash_password(password, settings.bcrypt_rounds),
            "updatedAt": utcnow(),
        }},
    )
    await tokens.delete_one({"_id": record["_id"]})
    logger.info("Password reset completed", extra={"admin_id": str(admin["_id"])})


async def create_super_admin(
    db: AsyncDatabase, settings: Settings, name: str, email: str, password: str,
) -> dict:
    email = normalize_email(email)
    if await find_admin_by_email(db, email) is not None:
        raise ConflictError(f"An admin with email {email} already exists")
    now = utcnow()
    admin = {
        "name": name.strip(),
        "email": email,
        "password": hash_password(password, settings.bcrypt_rounds),
        "role": AdminRole.SUPER_ADMIN.value,
        "approved": True,
        "approvedAt": now,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await collection(db, Collection.ADMINS).insert_one(admin)
    admin["_id"] = result.inserted_id
    logger.info("Super admin created", extra={"admin_id": str(admin["_id"])})
    return admin
