"""Auth Routes — registration, login, current admin and password reset.

Invariants:
    - Login answers 401 for unknown email and wrong password alike
    - forgot-password answers identically whether or not the email exists
"""

import logging

from fastapi import APIRouter, Depends, status
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import require_admin
from backstage.config import Settings, get_settings
from backstage.infrastructure.database import get_db
from backstage.infrastructure.mailer import SmtpMailer, get_mailer
from backstage.schemas.auth import (
    ForgotPasswordRequest, LoginRequest, RegisterRequest,
    ResetPasswordRequest, TokenResponse,
)
from backstage.schemas.common import MessageResponse
from backstage.services import accounts

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: AsyncDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create an admin account; it stays unusable until a super admin approves it."""
    admin = await accounts.register_admin(db, settings, body.name, body.email, body.password)
    return accounts.format_admin(admin)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    admin, token = await accounts.authenticate(db, settings, body.email, body.password)
    return TokenResponse(
        access_token=token,
        expires_in=settings.access_token_expire_minutes * 60,
        admin=accounts.format_admin(admin),
    )


@router.get("/me")
async def me(admin: dict = Depends(require_admin)):
    return accounts.format_admin(admin)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: SmtpMailer = Depends(get_mailer),
):
    message = await accounts.request_password_reset(db, settings, mailer, body.email)
    return MessageResponse(message=message)


@router.post("/forgot-password/reset", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    await accounts.reset_password(db, settings, body.token, body.password)
    return MessageResponse(message="Password updated")
