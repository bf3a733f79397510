"""Create csrf_token_stores table

Revision ID: 3c1f7a92d0be
Revises:
Create Date: 2026-10-18 10:12:41.508311

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1f7a92d0be"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the per-session token store table."""
    op.create_table(
        "csrf_token_stores",
        sa.Column("session_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        # Incremented on every write, used to detect concurrent writers
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("session_id", "name"),
    )

    op.create_index(
        op.f("ix_csrf_token_stores_updated_at"), "csrf_token_stores", ["updated_at"], unique=False
    )


def downgrade() -> None:
    """Drop the per-session token store table."""
    op.drop_index(op.f("ix_csrf_token_stores_updated_at"), table_name="csrf_token_stores")
    op.drop_table("csrf_token_stores")
