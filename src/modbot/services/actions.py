"""Action dispatch: turning rule-set actions into effects.

Effects are either persisted (cooldowns, bypass entries, roles, downvotes) or
performed on the protocol through Warpcast. Protocol calls are skipped when
``execute_on_protocol`` is off, which keeps local and staging runs inert.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from modbot.core.errors import ActionError
from modbot.db.time import utcnow
from modbot.schemas.actions import (
    ACTION_TYPES,
    Action,
    CooldownAction,
    DownvoteAction,
    GrantRoleAction,
)
from modbot.schemas.channel import ModeratedChannelConfig, SelectOption

if TYPE_CHECKING:
    from modbot.providers import Providers
    from modbot.repositories.moderation_repo import ModerationRepository
    from modbot.schemas.farcaster import Cast, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionTarget:
    """Who and what an action applies to."""

    channel: ModeratedChannelConfig
    user: User
    cast: Cast | None = None

    def require_cast(self, action_type: str) -> Cast:
        if self.cast is None:
            raise ActionError(f"Action {action_type} requires a cast")
        return self.cast


Handler = Callable[[Action, ActionTarget], Awaitable[None]]


class ActionDispatcher:
    """Executes actions through a closed handler table."""

    def __init__(
        self,
        providers: Providers,
        repository: ModerationRepository,
        *,
        execute_on_protocol: bool = True,
    ) -> None:
        self.providers = providers
        self.repository = repository
        self.execute_on_protocol = execute_on_protocol
        self._handlers: dict[str, Handler] = {
            "bypass": self._noop,
            "addToBypass": self._add_to_bypass,
            "hideQuietly": self._hide,
            "downvote": self._downvote,
            "ban": self._ban,
            "unlike": self._hide,
            "like": self._like,
            "mute": self._mute,
            "warnAndHide": self._hide,
            "cooldown": self._cooldown,
            "cooldownEnded": self._end_cooldown,
            "unhide": self._unhide,
            "unmuted": self._end_cooldown,
            "grantRole": self._grant_role,
        }
        missing = set(ACTION_TYPES) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for action types: {sorted(missing)}")

    async def dispatch(
        self,
        action: Action,
        *,
        channel: ModeratedChannelConfig,
        user: User,
        cast: Cast | None = None,
    ) -> None:
        """Run ``action`` against ``user`` (and ``cast`` on the cast path).

        Raises:
            ActionError: If the action cannot apply to the given target
        """
        handler = self._handlers[action.type]
        logger.info("[%s] %s fid %s", channel.id, action.type, user.fid)
        await handler(action, ActionTarget(channel=channel, user=user, cast=cast))

    async def _noop(self, action: Action, target: ActionTarget) -> None:
        return None

    async def _like(self, action: Action, target: ActionTarget) -> None:
        # Casts are visible by default; only join requests need an invite.
        if target.cast is None and self.execute_on_protocol:
            await self.providers.warpcast.invite_member(target.channel.id, target.user.fid)

    async def _hide(self, action: Action, target: ActionTarget) -> None:
        if target.cast is None:
            # Rejected join request: nothing to hide.
            return
        if self.execute_on_protocol:
            await self.providers.warpcast.hide_cast(target.cast.hash)

    async def _unhide(self, action: Action, target: ActionTarget) -> None:
        cast = target.require_cast(action.type)
        if self.execute_on_protocol:
            await self.providers.warpcast.unhide_cast(cast.hash)

    async def _ban(self, action: Action, target: ActionTarget) -> None:
        self.repository.upsert_cooldown(target.channel.id, target.user.fid, expires_at=None)
        if self.execute_on_protocol:
            await self.providers.warpcast.ban_user(target.channel.id, target.user.fid)

    async def _mute(self, action: Action, target: ActionTarget) -> None:
        self.repository.upsert_cooldown(target.channel.id, target.user.fid, expires_at=None)

    async def _cooldown(self, action: Action, target: ActionTarget) -> None:
        if not isinstance(action, CooldownAction):
            raise ActionError(f"Unexpected payload for {action.type} action")
        expires_at = utcnow() + timedelta(hours=action.args.duration)
        self.repository.upsert_cooldown(target.channel.id, target.user.fid, expires_at=expires_at)

    async def _end_cooldown(self, action: Action, target: ActionTarget) -> None:
        self.repository.deactivate_cooldown(target.channel.id, target.user.fid)

    async def _add_to_bypass(self, action: Action, target: ActionTarget) -> None:
        option = SelectOption(
            value=target.user.fid,
            label=target.user.username,
            icon=target.user.pfp_url,
        )
        self.repository.add_to_bypass(target.channel.id, option)

    async def _grant_role(self, action: Action, target: ActionTarget) -> None:
        if not isinstance(action, GrantRoleAction):
            raise ActionError(f"Unexpected payload for {action.type} action")
        role = self.repository.find_role(target.channel.id, action.args.role)
        if role is None:
            raise ActionError(f"Role {action.args.role} not found in /{target.channel.id}")
        self.repository.upsert_delegate(
            role,
            fid=target.user.fid,
            username=target.user.username,
            avatar_url=target.user.pfp_url,
        )

    async def _downvote(self, action: Action, target: ActionTarget) -> None:
        if not isinstance(action, DownvoteAction):
            raise ActionError(f"Unexpected payload for {action.type} action")
        cast = target.require_cast(action.type)
        self.repository.upsert_downvote(
            channel_id=target.channel.id,
            cast_hash=cast.hash,
            fid=int(action.args.voter_fid),
            username=action.args.voter_username,
            avatar_url=action.args.voter_avatar_url,
        )
