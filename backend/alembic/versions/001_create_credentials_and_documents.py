"""Create credentials and documents tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: `credentials` (who may log in) and `documents` (every
       content resource, discriminated by `resource`).
Requires: PostgreSQL 13+ for gen_random_uuid() without pgcrypto.

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "credentials",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "identifier",
            sa.String(255),
            nullable=False,
            comment="Login identifier (username or email)",
        ),
        sa.Column(
            "secret_hash",
            sa.String(255),
            nullable=False,
            comment="Salted one-way hash of the secret",
        ),
        sa.Column(
            "role",
            sa.String(50),
            nullable=False,
            server_default=sa.text("'admin'"),
            comment="Authorization role: admin, editor",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Last secret rotation (or creation)",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("identifier", name="uq_credentials_identifier"),
    )

    op.create_table(
        "documents",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "resource",
            sa.String(50),
            nullable=False,
            comment="Resource collection name, e.g. blog or legalServices",
        ),
        sa.Column(
            "data",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
            comment="Free-form document body",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Every list query filters one resource and orders by recency
    op.create_index(
        "idx_documents_resource_created_at",
        "documents",
        ["resource", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_documents_resource_created_at", table_name="documents")
    op.drop_table("documents")
    op.drop_table("credentials")
