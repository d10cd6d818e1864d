"""Create guild_documents table

Revision ID: 5c2e9d41a7b3
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5c2e9d41a7b3"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "guild_documents",
        sa.Column("guild_id", sa.String(32), primary_key=True),
        sa.Column("ranks", postgresql.JSONB(), nullable=True),
        sa.Column("achievements", postgresql.JSONB(), nullable=True),
        sa.Column("users", postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("guild_documents")
