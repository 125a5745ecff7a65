"""
EcoCodeAI Backend - Auth & User Schemas
=========================================

What:  Pydantic models for registration, login, token and profile payloads.
Who:   Used by routes/auth.py for request validation and response serialization.

The password only ever appears on request models; no response model has a
field that could carry it or its hash.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

USERNAME_PATTERN = r"^[A-Za-z0-9._-]+$"
BCRYPT_MAX_BYTES = 72


class RegisterRequest(BaseModel):
    """Body of POST /api/auth/register."""
    username: str = Field(
        min_length=3,
        max_length=50,
        pattern=USERNAME_PATTERN,
        description="Login name: letters, digits, '.', '_' or '-'",
    )
    password: str = Field(min_length=6, max_length=72, description="Plaintext password")

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, v: str) -> str:
        # bcrypt silently ignores everything past 72 bytes
        if len(v.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes in UTF-8")
        return v


class LoginRequest(BaseModel):
    """Body of POST /api/auth/login."""
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=72)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v


class UserResponse(BaseModel):
    """Public view of a user account."""
    id: uuid.UUID = Field(description="Unique user identifier (UUID)")
    username: str = Field(description="Login name")
    created_at: datetime = Field(description="Registration time (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class RegisterResponse(BaseModel):
    """Returned by POST /api/auth/register with HTTP 201."""
    message: str = Field(default="User registered successfully")
    user: UserResponse


class TokenResponse(BaseModel):
    """
    OAuth2-compatible token payload.

    `access_token` and `token_type` are the field names the OAuth2 password
    flow (and Swagger's Authorize dialog) expect.
    """
    access_token: str = Field(description="Signed JWT to send as 'Authorization: Bearer <token>'")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(description="Token lifetime in seconds")
