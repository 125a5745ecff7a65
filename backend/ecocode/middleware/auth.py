"""
EcoCodeAI Backend - Bearer Token Authentication
=================================================

What:  FastAPI dependencies that turn an `Authorization: Bearer <jwt>` header
       into the current User.
How:   OAuth2PasswordBearer extracts the token (auto_error=False so failures
       go through our AuthenticationError handler and error envelope),
       AuthService verifies it, UserService loads the account.
Who:   Declared on protected routes with Depends(get_current_user).

Unlike the classes in this package these are dependencies, not ASGI
middleware: only the routes that ask for a user pay for the lookup.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ecocode.config import settings
from ecocode.database import get_db_session
from ecocode.exceptions import AuthenticationError
from ecocode.models.user import User
from ecocode.services.auth_service import auth_service
from ecocode.services.user_service import user_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Raises:
        AuthenticationError: header missing, token invalid/expired, or the
            user it names no longer exists (→ 401).
    """
    if not token:
        raise AuthenticationError(message="Not authenticated")

    username = auth_service.decode_access_token(token)
    user = await user_service.get_by_username(db, username)
    if user is None:
        logger.warning("Valid token for unknown user '%s'", username)
        raise AuthenticationError()
    return user


async def require_analysis_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    """Authenticates /api/analyze callers only when ANALYSIS_REQUIRES_AUTH is on."""
    if not settings.analysis_requires_auth:
        return None
    return await get_current_user(token=token, db=db)
