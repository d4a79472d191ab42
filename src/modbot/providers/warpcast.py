"""Warpcast client: channel metadata, membership and moderation effects."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .http import ApiClient, ClientConfig, ProviderError

logger = logging.getLogger(__name__)


class WarpcastClient(ApiClient):
    """Channel reads plus the write calls that back moderation actions."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        super().__init__(
            ClientConfig(
                name="warpcast",
                base_url=base_url,
                timeout_seconds=timeout_seconds,
                headers=headers,
            ),
            transport=transport,
        )

    async def get_channel(self, channel_id: str) -> dict[str, Any]:
        payload = await self._json(
            self.RequestParams(method="GET", path="/v1/channel", params={"channelId": channel_id})
        )
        channel = payload.get("result", {}).get("channel")
        if not channel:
            raise ProviderError(f"Channel not found: {channel_id}", status_code=404)
        return channel

    async def get_channel_owner(self, channel_id: str) -> int:
        channel = await self.get_channel(channel_id)
        return int(channel["leadFid"])

    async def get_moderator_fids(self, channel_id: str) -> list[int]:
        channel = await self.get_channel(channel_id)
        return [int(fid) for fid in channel.get("moderatorFids", [])]

    async def is_channel_member(self, channel_id: str, fid: int) -> bool:
        payload = await self._json(
            self.RequestParams(
                method="GET",
                path="/fc/channel-members",
                params={"channelId": channel_id, "fid": fid},
            )
        )
        return bool(payload.get("result", {}).get("members"))

    async def is_following_channel(self, channel_id: str, fid: int) -> bool:
        payload = await self._json(
            self.RequestParams(
                method="GET",
                path="/v1/user-channel",
                params={"channelId": channel_id, "fid": fid},
            )
        )
        return bool(payload.get("result", {}).get("following"))

    async def invite_member(self, channel_id: str, fid: int) -> None:
        logger.info("[%s] inviting fid %s", channel_id, fid)
        await self._json(
            self.RequestParams(
                method="POST",
                path="/fc/channel-invites",
                json_data={"channelId": channel_id, "inviteFid": fid, "role": "member"},
            )
        )

    async def hide_cast(self, cast_hash: str) -> None:
        await self._moderate_cast(cast_hash, "hide")

    async def unhide_cast(self, cast_hash: str) -> None:
        await self._moderate_cast(cast_hash, "unhide")

    async def ban_user(self, channel_id: str, fid: int) -> None:
        logger.info("[%s] banning fid %s", channel_id, fid)
        await self._json(
            self.RequestParams(
                method="POST",
                path="/fc/channel-bans",
                json_data={"channelId": channel_id, "banFid": fid},
            )
        )

    async def _moderate_cast(self, cast_hash: str, action: str) -> None:
        logger.info("%s cast %s", action, cast_hash)
        await self._json(
            self.RequestParams(
                method="POST",
                path="/fc/moderated-casts",
                json_data={"castHash": cast_hash, "action": action},
            )
        )
