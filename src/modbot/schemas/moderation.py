# src/modbot/schemas/moderation.py
"""Moderation log, join request and simulation schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .channel import ModeratedChannelConfig
from .farcaster import Cast


class ModerationLogOut(BaseModel):
    """A moderation log entry, persisted or simulated."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    channel_id: str
    action: str
    actor: str
    reason: str
    affected_user_fid: str
    affected_username: str
    affected_user_avatar_url: str | None = None
    cast_hash: str = ""
    cast_text: str = ""
    rule: str = "{}"
    created_at: datetime
    updated_at: datetime

    @property
    def simulated(self) -> bool:
        return self.id.startswith("sim-")


class JoinRequest(BaseModel):
    """A Farcaster user asking to join a channel."""

    fid: int = Field(..., gt=0)


class JoinResponse(BaseModel):
    message: str
    action: str | None = None


class SimulationRequest(BaseModel):
    """Dry-run input: a user (and optionally a cast) against a configuration.

    When ``config`` is omitted the stored channel configuration is used.
    """

    fid: int = Field(..., gt=0)
    cast: Cast | None = None
    config: ModeratedChannelConfig | None = None


class SimulationResponse(BaseModel):
    logs: list[ModerationLogOut]


class ApproveRequest(BaseModel):
    actor: str = Field(..., min_length=1, description="Fid of the approving moderator")


class RuleDefinitionOut(BaseModel):
    """Catalogue entry describing a registered check."""

    name: str
    author: str
    author_url: str | None = None
    friendly_name: str
    description: str
    check_type: str
    category: str
    allow_multiple: bool
    invertable: bool
    inverted_description: str | None = None
    hidden: bool
    args: dict[str, dict[str, Any]]
