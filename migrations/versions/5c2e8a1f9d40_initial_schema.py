"""initial moderation schema

Revision ID: 5c2e8a1f9d40
Revises:
Create Date: 2026-10-19 09:12:44.512304

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2e8a1f9d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create channel configuration, audit and intake tables."""
    op.create_table(
        "moderated_channel",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("inclusion_rule_set", sa.Text(), nullable=True),
        sa.Column("exclusion_rule_set", sa.Text(), nullable=True),
        sa.Column("exclude_usernames", sa.Text(), nullable=False),
        sa.Column("exclude_cohosts", sa.Boolean(), nullable=False),
        sa.Column("slow_mode_hours", sa.Integer(), nullable=False),
        sa.Column("ban_threshold", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "role",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("channel_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("is_cohost_role", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["channel_id"], ["moderated_channel.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("channel_id", "name"),
    )
    op.create_table(
        "delegate",
        sa.Column("fid", sa.String(length=32), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("channel_id", sa.String(length=64), nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["role_id"], ["role.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("fid", "role_id", "channel_id"),
    )
    op.create_table(
        "moderation_log",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("channel_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("actor", sa.String(length=64), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("affected_user_fid", sa.String(length=32), nullable=False),
        sa.Column("affected_username", sa.String(length=128), nullable=False),
        sa.Column("affected_user_avatar_url", sa.Text(), nullable=True),
        sa.Column("cast_hash", sa.String(length=128), nullable=False),
        sa.Column("cast_text", sa.Text(), nullable=False),
        sa.Column("rule", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_moderation_log_channel_id", "moderation_log", ["channel_id"], unique=False
    )
    op.create_index(
        "ix_moderation_log_affected_user_fid",
        "moderation_log",
        ["affected_user_fid"],
        unique=False,
    )
    op.create_table(
        "cooldown",
        sa.Column("affected_user_id", sa.String(length=32), nullable=False),
        sa.Column("channel_id", sa.String(length=64), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("affected_user_id", "channel_id"),
    )
    op.create_table(
        "downvote",
        sa.Column("fid", sa.String(length=32), nullable=False),
        sa.Column("cast_hash", sa.String(length=128), nullable=False),
        sa.Column("channel_id", sa.String(length=64), nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("fid", "cast_hash"),
    )
    op.create_table(
        "cast_log",
        sa.Column("hash", sa.String(length=128), nullable=False),
        sa.Column("channel_id", sa.String(length=64), nullable=False),
        sa.Column("author_fid", sa.Integer(), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False),
        sa.Column("data", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("hash"),
    )
    op.create_index("ix_cast_log_channel_id", "cast_log", ["channel_id"], unique=False)


def downgrade() -> None:
    """Drop every ModBot table."""
    op.drop_index("ix_cast_log_channel_id", table_name="cast_log")
    op.drop_table("cast_log")
    op.drop_table("downvote")
    op.drop_table("cooldown")
    op.drop_index("ix_moderation_log_affected_user_fid", table_name="moderation_log")
    op.drop_index("ix_moderation_log_channel_id", table_name="moderation_log")
    op.drop_table("moderation_log")
    op.drop_table("delegate")
    op.drop_table("role")
    op.drop_table("moderated_channel")
