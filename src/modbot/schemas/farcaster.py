# src/modbot/schemas/farcaster.py
"""Farcaster user and cast shapes, as returned by the hub APIs.

Only the fields the rule engine reads are declared; everything else in a
provider payload is ignored.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UserBio(_Payload):
    text: str | None = None


class UserProfile(_Payload):
    bio: UserBio = Field(default_factory=UserBio)


class ViewerContext(_Payload):
    following: bool = False
    followed_by: bool = False


class User(_Payload):
    """A Farcaster account."""

    fid: int
    username: str = ""
    display_name: str | None = None
    pfp_url: str | None = None
    custody_address: str | None = None
    verifications: list[str] = Field(default_factory=list)
    follower_count: int = 0
    following_count: int = 0
    power_badge: bool = False
    profile: UserProfile = Field(default_factory=UserProfile)
    viewer_context: ViewerContext | None = None

    @property
    def addresses(self) -> list[str]:
        """Custody address plus verified EVM addresses."""
        wallets = [self.custody_address] if self.custody_address else []
        wallets.extend(v for v in self.verifications if v.startswith("0x"))
        return wallets


class CastId(_Payload):
    fid: int | None = None
    hash: str


class CastEmbed(_Payload):
    url: str | None = None
    cast_id: CastId | None = None


class CastFrame(_Payload):
    frames_url: str


class CastChannel(_Payload):
    id: str


class Cast(_Payload):
    """A Farcaster post."""

    hash: str
    author: User
    text: str = ""
    parent_hash: str | None = None
    parent_url: str | None = None
    root_parent_url: str | None = None
    timestamp: datetime | None = None
    embeds: list[CastEmbed] = Field(default_factory=list)
    frames: list[CastFrame] = Field(default_factory=list)
    channel: CastChannel | None = None

    @property
    def is_reply(self) -> bool:
        return self.parent_hash is not None
