"""Neynar client: Farcaster users, casts, power badges and subscriptions."""

from __future__ import annotations

import httpx

from modbot.schemas.farcaster import Cast, User

from .http import ApiClient, ClientConfig, ProviderError


class NeynarClient(ApiClient):
    """Read-only access to the Neynar v2 API."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            ClientConfig(
                name="neynar",
                base_url=base_url,
                timeout_seconds=timeout_seconds,
                headers={"api_key": api_key, "accept": "application/json"},
            ),
            transport=transport,
        )

    async def fetch_bulk_users(self, fids: list[int], *, viewer_fid: int | None = None) -> list[User]:
        """Fetch users by fid; with ``viewer_fid`` each carries a viewer context."""
        if not fids:
            return []
        query: dict[str, str | int] = {"fids": ",".join(str(fid) for fid in fids)}
        if viewer_fid is not None:
            query["viewer_fid"] = viewer_fid
        payload = await self._json(
            self.RequestParams(method="GET", path="/v2/farcaster/user/bulk", params=query)
        )
        return [User.model_validate(item) for item in payload.get("users", [])]

    async def get_user(self, fid: int) -> User | None:
        users = await self.fetch_bulk_users([fid])
        return users[0] if users else None

    async def is_following(self, fid: int, target_fid: int) -> bool:
        """Whether ``fid`` follows ``target_fid``."""
        users = await self.fetch_bulk_users([target_fid], viewer_fid=fid)
        return any(u.viewer_context is not None and u.viewer_context.following for u in users)

    async def power_badge_fids(self) -> list[int]:
        payload = await self._json(
            self.RequestParams(method="GET", path="/v2/farcaster/user/power_lite")
        )
        return [int(fid) for fid in payload.get("result", {}).get("fids", [])]

    async def subscriber_fids(self, fid: int, provider: str = "paragraph") -> list[int]:
        payload = await self._json(
            self.RequestParams(
                method="GET",
                path="/v2/farcaster/user/subscribers",
                params={"fid": fid, "subscription_provider": provider},
            )
        )
        subscribers = payload.get("subscribers") or []
        return [int(s["user"]["fid"]) for s in subscribers if s.get("user")]

    async def fetch_cast(self, cast_hash: str) -> Cast:
        """Fetch a cast with its frames and resolved embeds."""
        payload = await self._json(
            self.RequestParams(
                method="GET",
                path="/v2/farcaster/casts",
                params={"casts": cast_hash},
            )
        )
        casts = payload.get("result", {}).get("casts", [])
        if not casts:
            raise ProviderError(f"Cast not found: {cast_hash}", status_code=404)
        return Cast.model_validate(casts[0])
