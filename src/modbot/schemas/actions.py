# src/modbot/schemas/actions.py
"""Action schemas.

Actions are declarative instructions attached to a rule set. Each variant is
keyed by its ``type`` and carries a fixed ``args`` shape.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

ACTION_TYPES: tuple[str, ...] = (
    "bypass",
    "addToBypass",
    "hideQuietly",
    "downvote",
    "ban",
    "unlike",
    "like",
    "mute",
    "warnAndHide",
    "cooldown",
    "cooldownEnded",
    "unhide",
    "unmuted",
    "grantRole",
)


class _ActionBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class BypassAction(_ActionBase):
    type: Literal["bypass"] = "bypass"


class AddToBypassAction(_ActionBase):
    type: Literal["addToBypass"] = "addToBypass"


class HideQuietlyAction(_ActionBase):
    type: Literal["hideQuietly"] = "hideQuietly"


class BanAction(_ActionBase):
    type: Literal["ban"] = "ban"


class UnlikeAction(_ActionBase):
    type: Literal["unlike"] = "unlike"


class LikeAction(_ActionBase):
    type: Literal["like"] = "like"


class MuteAction(_ActionBase):
    type: Literal["mute"] = "mute"


class WarnAndHideAction(_ActionBase):
    type: Literal["warnAndHide"] = "warnAndHide"


class CooldownEndedAction(_ActionBase):
    type: Literal["cooldownEnded"] = "cooldownEnded"


class UnhideAction(_ActionBase):
    type: Literal["unhide"] = "unhide"


class UnmutedAction(_ActionBase):
    type: Literal["unmuted"] = "unmuted"


class DownvoteArgs(_ActionBase):
    voter_fid: str = Field(..., alias="voterFid")
    voter_username: str = Field(..., alias="voterUsername")
    voter_avatar_url: str = Field(..., alias="voterAvatarUrl")


class DownvoteAction(_ActionBase):
    type: Literal["downvote"] = "downvote"
    args: DownvoteArgs


class CooldownArgs(_ActionBase):
    # Hours; numeric strings from form posts are coerced.
    duration: float = Field(..., ge=0)


class CooldownAction(_ActionBase):
    type: Literal["cooldown"] = "cooldown"
    args: CooldownArgs


class GrantRoleArgs(_ActionBase):
    role: str = Field(..., min_length=1)


class GrantRoleAction(_ActionBase):
    type: Literal["grantRole"] = "grantRole"
    args: GrantRoleArgs


Action = Annotated[
    BypassAction
    | AddToBypassAction
    | HideQuietlyAction
    | DownvoteAction
    | BanAction
    | UnlikeAction
    | LikeAction
    | MuteAction
    | WarnAndHideAction
    | CooldownAction
    | CooldownEndedAction
    | UnhideAction
    | UnmutedAction
    | GrantRoleAction,
    Field(discriminator="type"),
]

action_adapter: TypeAdapter[Action] = TypeAdapter(Action)


def action_of(action_type: str) -> Action:
    """Build an argument-less action, e.g. the implicit ``hideQuietly``."""
    return action_adapter.validate_python({"type": action_type})
