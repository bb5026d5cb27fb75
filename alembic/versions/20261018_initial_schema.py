"""Initial schema: users, foods, daily_logs, user_targets.

Revision ID: 3f9c2a7d1e04
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = "3f9c2a7d1e04"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "foods",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("brand", sa.String(200), nullable=True),
        sa.Column("macro_category", sa.String(50), nullable=True),
        sa.Column("serving_qty", sa.Float, nullable=False, server_default="100"),
        sa.Column("serving_unit", sa.String(20), nullable=False, server_default="g"),
        sa.Column("calories_per_serving", sa.Integer, nullable=True),
        sa.Column("protein_per_serving", sa.Float, nullable=True),
        sa.Column("carbs_per_serving", sa.Float, nullable=True),
        sa.Column("fat_per_serving", sa.Float, nullable=True),
        sa.Column("owner_id", sa.String(36), nullable=True),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_foods_owner_id", "foods", ["owner_id"])
    op.create_index("ix_foods_public_name", "foods", ["is_public", "name"])

    op.create_table(
        "daily_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("log_date", sa.String(10), nullable=False),
        sa.Column("total_calories", sa.Integer, nullable=False, server_default="0"),
        sa.Column("protein_g", sa.Integer, nullable=False, server_default="0"),
        sa.Column("carbs_g", sa.Integer, nullable=False, server_default="0"),
        sa.Column("fat_g", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "log_date", name="uq_user_daily_log"),
    )
    op.create_index("ix_daily_logs_user_date", "daily_logs", ["user_id", "log_date"])

    op.create_table(
        "user_targets",
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("daily_calories", sa.Integer, nullable=False),
        sa.Column("protein_g", sa.Integer, nullable=False),
        sa.Column("carbs_g", sa.Integer, nullable=False),
        sa.Column("fat_g", sa.Integer, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("user_targets")
    op.drop_index("ix_daily_logs_user_date", table_name="daily_logs")
    op.drop_table("daily_logs")
    op.drop_index("ix_foods_public_name", table_name="foods")
    op.drop_index("ix_foods_owner_id", table_name="foods")
    op.drop_table("foods")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
