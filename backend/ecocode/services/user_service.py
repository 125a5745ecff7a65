"""
EcoCodeAI Backend - User Service
==================================

What:  Registration, login and lookup of user accounts.
How:   Works on the request's AsyncSession; the session dependency commits or
       rolls back after the route returns.
Who:   Called by routes/auth.py and by the bearer-token dependency.

Invariants:
    - username is unique (checked up front, enforced by the unique index)
    - only the bcrypt hash of a password is ever written
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ecocode.exceptions import AuthenticationError, ConflictError, DatabaseError
from ecocode.models.user import User
from ecocode.schemas.user import UserResponse
from ecocode.services.auth_service import auth_service

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Incorrect username or password"


class UserService:

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user: %s", str(e))
            raise DatabaseError(
                message="Could not look up the user. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    async def register(self, db: AsyncSession, username: str, password: str) -> UserResponse:
        """
        Create a user account.

        Raises:
            ConflictError: username is already taken (→ 409)
            DatabaseError: insert failed for any other reason (→ 500)
        """
        if await self.get_by_username(db, username) is not None:
            raise ConflictError(
                message=f"Username '{username}' is already taken",
                field="username",
            )

        user = User(
            username=username,
            hashed_password=auth_service.hash_password(password),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent registration of the same name
            await db.rollback()
            raise ConflictError(
                message=f"Username '{username}' is already taken",
                field="username",
            ) from e
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("User registered: %s (id=%s)", user.username, user.id)
        return UserResponse.model_validate(user)

    async def authenticate(self, db: AsyncSession, username: str, password: str) -> User:
        """
        Check credentials and stamp last_login_at.

        Raises:
            AuthenticationError: unknown user or wrong password (same message for both)
        """
        user = await self.get_by_username(db, username)
        if user is None:
            # Unknown names take as long as wrong passwords
            auth_service.dummy_verify()
            verified = False
        else:
            verified = auth_service.verify_password(password, user.hashed_password)

        if not verified:
            logger.info("Failed login attempt for username=%s", username)
            raise AuthenticationError(message=INVALID_CREDENTIALS)

        user.last_login_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error recording login: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__}) from e

        logger.info("User logged in: %s", user.username)
        return user


user_service = UserService()
