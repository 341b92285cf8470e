"""create users

Revision ID: 3b1f0c9d2a7e
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f0c9d2a7e"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("xero_userid", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("decoded_id_token", postgresql.JSONB(), nullable=False),
        sa.Column("token_set", postgresql.JSONB(), nullable=False),
        sa.Column("active_tenant", postgresql.JSONB(), nullable=True),
        sa.Column("session", sa.String(length=64), nullable=False),
        sa.Column("more_info", sa.Text(), nullable=True),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_session", "users", ["session"])


def downgrade() -> None:
    op.drop_index("ix_users_session", table_name="users")
    op.drop_table("users")
