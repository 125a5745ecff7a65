"""
EcoCodeAI Backend - Authentication Routes
===========================================

What:  Account registration, token issuance and the current-user endpoint.

Request Flow (login):
    1. Client posts credentials (JSON to /login, or form data to /token)
    2. UserService verifies the bcrypt hash and stamps last_login_at
    3. AuthService signs a JWT with the username as subject
    4. Client sends it back as `Authorization: Bearer <token>`

/token exists so Swagger UI's "Authorize" button (OAuth2 password flow,
form-encoded) works against the same accounts.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from ecocode.database import get_db_session
from ecocode.middleware.auth import get_current_user
from ecocode.models.user import User
from ecocode.schemas.common import ErrorResponse
from ecocode.schemas.user import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from ecocode.services.auth_service import auth_service
from ecocode.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _issue_token(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=auth_service.create_access_token(user.username),
        token_type="bearer",
        expires_in=auth_service.expires_in,
    )


@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    responses={
        409: {"description": "Username already taken", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    user = await user_service.register(db, body.username, body.password)
    return RegisterResponse(user=user)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"description": "Incorrect username or password", "model": ErrorResponse},
    },
    summary="Log in with JSON credentials",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    user = await user_service.authenticate(db, body.username, body.password)
    return _issue_token(user)


@router.post(
    "/token",
    response_model=TokenResponse,
    responses={
        401: {"description": "Incorrect username or password", "model": ErrorResponse},
    },
    summary="Log in with an OAuth2 password form",
)
async def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    user = await user_service.authenticate(db, form_data.username.strip(), form_data.password)
    return _issue_token(user)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
    },
    summary="Get the authenticated user",
)
async def read_current_user(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)
