# src/modbot/models/channel.py
"""Models describing moderated channels and the roles granted inside them."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modbot.db.session import Base
from modbot.db.time import utcnow


class ModeratedChannel(Base):
    """Per-channel moderation configuration.

    Rule sets are stored as serialized JSON in the camelCase shape the
    dashboard writes, so stored configuration stays readable by older clients.
    """

    __tablename__ = "moderated_channel"

    # Lower-cased Farcaster channel key, e.g. "base".
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    inclusion_rule_set: Mapped[str | None] = mapped_column(Text, nullable=True)
    exclusion_rule_set: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON list of {value: fid, label: username, icon: avatar url}.
    exclude_usernames: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    exclude_cohosts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    slow_mode_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Stored for the dashboard; violation counting is not active.
    ban_threshold: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    roles: Mapped[list["Role"]] = relationship(
        back_populates="channel",
        cascade="all, delete-orphan",
    )


class Role(Base):
    """Named role inside a channel; cohost roles exempt delegates from rules."""

    __tablename__ = "role"
    __table_args__ = (UniqueConstraint("channel_id", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("moderated_channel.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    is_cohost_role: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    channel: Mapped[ModeratedChannel] = relationship(back_populates="roles")
    delegates: Mapped[list["Delegate"]] = relationship(
        back_populates="role",
        cascade="all, delete-orphan",
    )


class Delegate(Base):
    """A user holding a role in a channel."""

    __tablename__ = "delegate"

    fid: Mapped[str] = mapped_column(String(32), primary_key=True)
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("role.id", ondelete="CASCADE"),
        primary_key=True,
    )
    channel_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    role: Mapped[Role] = relationship(back_populates="delegates")
