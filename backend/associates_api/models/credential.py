"""
Associates Backend — Credential SQLAlchemy Model
=================================================

What:  ORM model for the `credentials` table (who may log in, and as what role).
Why:   The auth gate looks credentials up by identifier on every login.
How:   The secret is stored only as a bcrypt hash; the plain secret never
       touches this table.

Lifecycle:
    1. Created at provisioning (startup bootstrap or POST /api/auth/register)
    2. secret_hash replaced on rotation (updated_at moves with it)
    3. Never deleted by this service
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from associates_api.database import Base

ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"
ROLES = (ROLE_ADMIN, ROLE_EDITOR)


class Credential(Base):
    __tablename__ = "credentials"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    # Unique login name (username or email); lookups are exact-match
    identifier: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Login identifier (username or email)",
    )

    # bcrypt output is 60 chars; 255 leaves room for a future scheme prefix
    secret_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Salted one-way hash of the secret",
    )

    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ROLE_ADMIN,
        server_default=text("'admin'"),
        comment="Authorization role: admin, editor",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Last secret rotation (or creation)",
    )

    def __repr__(self) -> str:
        # Never include secret_hash
        return f"<Credential(identifier='{self.identifier}', role='{self.role}')>"
