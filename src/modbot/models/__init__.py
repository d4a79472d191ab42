# src/modbot/models/__init__.py
"""SQLAlchemy models for the ModBot service."""

from .cast_log import CastLog
from .channel import Delegate, ModeratedChannel, Role
from .moderation import Cooldown, Downvote, ModerationLog

__all__ = [
    "CastLog",
    "Delegate", "ModeratedChannel", "Role",
    "Cooldown", "Downvote", "ModerationLog",
]
