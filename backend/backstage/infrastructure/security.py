"""Security Primitives — password hashing, access tokens and reset tokens.

Invariants:
    - Passwords are stored only as bcrypt hashes (work factor from settings)
    - Access tokens are HS256 JWTs carrying sub (admin id), role, type="access", iat, exp
    - Any decoding failure surfaces as AuthenticationError, never as a PyJWT exception
    - Reset tokens are 32 random bytes, hex-encoded

Design Decisions:
    - bcrypt + PyJWT directly, no passlib layer: two small, well-maintained libraries
    - Settings passed in explicitly so CLI commands and tests control the secret
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from backstage.config import Settings
from backstage.core.errors import AuthenticationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Constant-time check; malformed hashes count as a mismatch."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8"),
        )
    except ValueError as e:
        logger.warning(f"Password verification failed: {e}")
        return False


def create_access_token(
    admin_id: str, role: str, settings: Settings, now: datetime | None = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    claims = {
        "sub": admin_id,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")
    if payload.get("type") != ACCESS_TOKEN_TYPE or not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return payload


def new_reset_token() -> str:
    return secrets.token_hex(32)
