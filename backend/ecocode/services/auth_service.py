"""
EcoCodeAI Backend - Password Hashing & Access Tokens
======================================================

What:  bcrypt password hashing (passlib) and JWT access tokens (python-jose).
Who:   UserService hashes/verifies passwords; the auth routes issue tokens;
       the auth dependency (middleware/auth.py) decodes them.

Token format:
    HS256-signed JWT with claims:
        sub: username
        iat: issued-at (UTC)
        exp: expiry (UTC), ACCESS_TOKEN_EXPIRE_MINUTES after issue
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from ecocode.config import settings
from ecocode.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class AuthService:
    """Stateless apart from the signing key and the hashing context."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expire_minutes = expire_minutes or settings.access_token_expire_minutes

        key = secret_key or settings.jwt_secret_key
        if not key:
            key = secrets.token_urlsafe(32)
            logger.warning(
                "JWT_SECRET_KEY not set; using an ephemeral signing key. "
                "Issued tokens will be invalid after a restart."
            )
        self._secret_key = key

    # ── Passwords ─────────────────────────────────────────────────────────

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """False for a wrong password and for a hash passlib cannot identify."""
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            logger.warning("Stored password hash has an unrecognized format")
            return False

    def dummy_verify(self) -> None:
        """Spend the same bcrypt work as a real check, for logins with no matching user."""
        self.pwd_context.dummy_verify()

    # ── Tokens ────────────────────────────────────────────────────────────

    @property
    def expires_in(self) -> int:
        """Default token lifetime in seconds."""
        return self.expire_minutes * 60

    def create_access_token(
        self,
        subject: str,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))
        claims = {"sub": subject, "iat": now, "exp": expire}
        return jwt.encode(claims, self._secret_key, algorithm=self.algorithm)

    def decode_access_token(self, token: str) -> str:
        """
        Verify signature and expiry, return the subject (username).

        Raises:
            AuthenticationError: bad signature, expired, malformed, or no subject.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise AuthenticationError(
                context={"reason": type(e).__name__},
            ) from e

        subject = payload.get("sub")
        if not subject or not isinstance(subject, str):
            raise AuthenticationError(context={"reason": "missing_subject"})
        return subject


auth_service = AuthService()
