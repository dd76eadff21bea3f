"""document store tables

Revision ID: 202610180001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610180001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("collection", sa.String(), nullable=False),
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("body", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("collection", "id"),
    )
    op.create_index("ix_documents_updated_at", "documents", ["updated_at"])

    op.create_table(
        "document_elements",
        sa.Column("collection", sa.String(), nullable=False),
        sa.Column("document_id", sa.String(), nullable=False),
        sa.Column("path", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("field", sa.String(), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("collection", "document_id", "path", "position", "field"),
    )
    op.create_index(
        "ix_document_elements_lookup",
        "document_elements",
        ["collection", "path", "field", "value"],
    )
    op.create_index(
        "ix_document_elements_document",
        "document_elements",
        ["collection", "document_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_document_elements_document", table_name="document_elements")
    op.drop_index("ix_document_elements_lookup", table_name="document_elements")
    op.drop_table("document_elements")
    op.drop_index("ix_documents_updated_at", table_name="documents")
    op.drop_table("documents")
