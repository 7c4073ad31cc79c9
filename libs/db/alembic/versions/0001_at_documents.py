# ruff: noqa: I001
"""Document store table for asset, accrual, prepaid and settings documents.

Revision ID: 0001_at_documents
Revises: None
Create Date: 2025-10-17
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_at_documents"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "at_documents",
        sa.Column("collection", sa.String(length=64), nullable=False),
        sa.Column("doc_id", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("collection", "doc_id", name="pk_at_documents"),
    )
    op.create_index(
        "ix_at_documents_collection_created",
        "at_documents",
        ["collection", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_at_documents_collection_created", table_name="at_documents")
    op.drop_table("at_documents")
