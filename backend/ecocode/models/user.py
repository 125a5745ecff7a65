"""
EcoCodeAI Backend - User SQLAlchemy Model
===========================================

What:  ORM model representing the `users` table.
Who:   Used by UserService for registration and login, and by Alembic.
When:  Created on registration; read on login and on every authenticated request.

Table Design:
    - UUID primary key: non-sequential, cannot be enumerated
    - username: unique, indexed (every login and token check looks it up)
    - hashed_password: bcrypt hash; the plaintext password is never stored
    - created_at / last_login_at: UTC, timezone-aware
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from ecocode.database import Base


class User(Base):
    """A registered EcoCodeAI account."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier",
    )

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Login name, unique across all users",
    )

    # bcrypt output is 60 chars; 255 leaves room for a future scheme change
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Password hash (bcrypt via passlib)",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the account was registered (UTC)",
    )

    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        comment="Last successful login (UTC)",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
