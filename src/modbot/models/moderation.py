# src/modbot/models/moderation.py
"""Models tracking moderation decisions and user suspensions."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from modbot.db.session import Base
from modbot.db.time import utcnow


def _new_log_id() -> str:
    return str(uuid.uuid4())


class ModerationLog(Base):
    """Append-only audit record, one row per executed action."""

    __tablename__ = "moderation_log"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_log_id)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    # "system" for automated decisions, otherwise the moderator's fid.
    actor: Mapped[str] = mapped_column(String(64), nullable=False, default="system")
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    affected_user_fid: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    affected_username: Mapped[str] = mapped_column(String(128), nullable=False)
    affected_user_avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    cast_hash: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    cast_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # JSON of the rule node that produced the decision, "{}" when none did.
    rule: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )


class Cooldown(Base):
    """Per-user-per-channel suspension; a null expiry means banned or muted."""

    __tablename__ = "cooldown"

    affected_user_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Downvote(Base):
    """A moderator downvote against a cast."""

    __tablename__ = "downvote"

    fid: Mapped[str] = mapped_column(String(32), primary_key=True)
    cast_hash: Mapped[str] = mapped_column(String(128), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False)
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
