"""Auth payload validation — registration and password reset.

Invariants:
    - Passwords must match their confirmation
    - Names are stripped before the length check
"""

import pytest
from pydantic import ValidationError

from backstage.schemas.auth import LoginRequest, RegisterRequest, ResetPasswordRequest


def test_register_strips_name():
    req = RegisterRequest(
        name="  Ana  ", email="ana@example.com", password="secret123", confirmPassword="secret123",
    )
    assert req.name == "Ana"


def test_register_rejects_short_name_after_strip():
    with pytest.raises(ValidationError):
        RegisterRequest(
            name=" A ", email="ana@example.com", password="secret123", confirmPassword="secret123",
        )


def test_register_rejects_mismatched_passwords():
    with pytest.raises(ValidationError, match="passwords do not match"):
        RegisterRequest(
            name="Ana", email="ana@example.com", password="secret123", confirmPassword="secret124",
        )


def test_register_rejects_invalid_email():
    with pytest.raises(ValidationError):
        RegisterRequest(name="Ana", email="not-an-email", password="secret123", confirmPassword="secret123")


def test_login_requires_password():
    with pytest.raises(ValidationError):
        LoginRequest(email="ana@example.com", password="")


def test_reset_password_rejects_short_password():
    with pytest.raises(ValidationError):
        ResetPasswordRequest(token="t", password="short", confirmPassword="short")
