"""Intake bookkeeping for casts received from the webhook source."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from modbot.db.session import Base
from modbot.db.time import utcnow

CAST_STATUS_PROCESSED = 0
CAST_STATUS_FAILED = 1
CAST_STATUS_IGNORED = 2


class CastLog(Base):
    """One row per cast hash seen by intake."""

    __tablename__ = "cast_log"

    hash: Mapped[str] = mapped_column(String(128), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    author_fid: Mapped[int] = mapped_column(Integer, nullable=False)
    # 0 = processed, 1 = failed, 2 = ignored.
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=CAST_STATUS_PROCESSED)
    data: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
