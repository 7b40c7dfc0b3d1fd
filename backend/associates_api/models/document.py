"""
Associates Backend — Document SQLAlchemy Model
===============================================

What:  ORM model for the `documents` table, the generic store behind every
       content resource (blog, job, team, gallery, about, news, legalServices).
Why:   The resources share one shape (a free-form JSON body plus timestamps),
       so one table with a `resource` discriminator replaces seven near-identical
       collections.
How:   `data` is JSONB on PostgreSQL (plain JSON elsewhere). Listing filters on
       `resource` and orders by `created_at`, which the composite index covers.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from associates_api.database import Base


class Document(Base):
    """
    One item of one content resource.

    Query Patterns:
        - List a resource: WHERE resource = :r ORDER BY created_at DESC, id DESC LIMIT n
          → idx_documents_resource_created_at
        - Get by id: WHERE id = :uuid AND resource = :r → primary key
    """

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    resource: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Resource collection name, e.g. blog or legalServices",
    )

    data: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
        comment="Free-form document body",
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
    )

    __table_args__ = (
        Index("idx_documents_resource_created_at", "resource", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, resource='{self.resource}')>"
