"""Persistence helpers over SQLAlchemy sessions."""

from .moderation_repo import ModerationRepository

__all__ = ["ModerationRepository"]
