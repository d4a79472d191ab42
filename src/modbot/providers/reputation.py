"""Third-party reputation and credential services."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .http import HTTP_NOT_FOUND, ApiClient, ClientConfig, ProviderError

logger = logging.getLogger(__name__)


class BotOrNotClient(ApiClient):
    """Bot or Not classifier."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            ClientConfig(name="botornot", base_url=base_url, timeout_seconds=timeout_seconds),
            transport=transport,
        )

    async def classify(self, fid: int, *, timeout: float | None = None) -> dict[str, Any]:
        """Return ``{"fid": .., "result": {"bot": bool | None, "status": ..}}``."""
        return await self._json(
            self.RequestParams(
                method="GET",
                path="/api/botornot/mod/v1",
                params={"fid": fid, "forceAnalyzeIfEmpty": "true"},
                timeout=timeout,
            )
        )


class AirstackClient(ApiClient):
    """Airstack GraphQL API."""

    def __init__(
        self,
        *,
        api_key: str,
        url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            ClientConfig(
                name="airstack",
                base_url="",
                timeout_seconds=timeout_seconds,
                headers={"Authorization": api_key},
            ),
            transport=transport,
        )
        self.url = url

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = await self._json(
            self.RequestParams(
                method="POST",
                path=self.url,
                json_data={"query": query, "variables": variables or {}},
            )
        )
        if payload.get("errors"):
            raise ProviderError(f"airstack query failed: {payload['errors']}")
        return payload.get("data") or {}

    async def far_rank(self, fid: int) -> int | None:
        """Social capital rank, or ``None`` when Airstack has none."""
        data = await self.query(
            """
            query FarRank($identity: Identity!) {
              Socials(input: {filter: {dappName: {_eq: farcaster}, identity: {_eq: $identity}},
                              blockchain: ethereum}) {
                Social { farcasterScore { farRank } }
              }
            }
            """,
            {"identity": f"fc_fid:{fid}"},
        )
        socials = (data.get("Socials") or {}).get("Social") or []
        if not socials:
            return None
        rank = (socials[0].get("farcasterScore") or {}).get("farRank")
        return int(rank) if rank else None


class OpenRankClient(ApiClient):
    """OpenRank engagement rankings."""

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
                name="openrank",
                base_url=base_url,
                timeout_seconds=timeout_seconds,
                headers={"API-Key": api_key},
            ),
            transport=transport,
        )

    async def _rank(self, path: str, fid: int) -> dict[str, Any] | None:
        payload = await self._json(self.RequestParams(method="POST", path=path, json_data=[fid]))
        for entry in payload.get("result", []):
            if entry.get("fid") == fid:
                return entry
        return None

    async def global_rank(self, fid: int) -> dict[str, Any] | None:
        return await self._rank("/priority/scores/global/engagement/fids", fid)

    async def channel_rank(self, channel_id: str, fid: int) -> dict[str, Any] | None:
        return await self._rank(f"/priority/channels/rankings/{channel_id}/fids", fid)


class IcebreakerClient(ApiClient):
    """Icebreaker profiles: credentials, linked accounts, POAPs and guilds."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            ClientConfig(name="icebreaker", base_url=base_url, timeout_seconds=timeout_seconds),
            transport=transport,
        )

    async def profile_by_fid(self, fid: int) -> dict[str, Any] | None:
        """Return the first Icebreaker profile for ``fid``.

        Lookup failures are reported as a missing profile.
        """
        try:
            payload = await self._json(self.RequestParams(method="GET", path=f"/fid/{fid}"))
        except ProviderError as exc:
            if exc.status_code != HTTP_NOT_FOUND:
                logger.warning("Icebreaker lookup for fid %s failed: %s", fid, exc)
            return None
        profiles = payload.get("profiles") or []
        return profiles[0] if profiles else None
