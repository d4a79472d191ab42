"""External collaborators consumed by checks and actions.

``Providers`` bundles one client per upstream so the rule engine receives its
dependencies explicitly instead of importing module-level singletons.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from modbot.core.settings import Settings

from .http import ProviderError, ProviderTimeoutError, ProviderUnavailableError
from .neynar import NeynarClient
from .onchain import OnchainClient, SimplehashClient
from .reputation import AirstackClient, BotOrNotClient, IcebreakerClient, OpenRankClient
from .warpcast import WarpcastClient
from .webhook import RuleWebhookClient


@dataclass
class Providers:
    """Container of provider clients."""

    neynar: NeynarClient
    warpcast: WarpcastClient
    onchain: OnchainClient
    simplehash: SimplehashClient
    botornot: BotOrNotClient
    airstack: AirstackClient
    openrank: OpenRankClient
    icebreaker: IcebreakerClient
    webhooks: RuleWebhookClient

    async def close(self) -> None:
        """Release every underlying HTTP connection pool."""
        for client in (
            self.neynar,
            self.warpcast,
            self.onchain,
            self.simplehash,
            self.botornot,
            self.airstack,
            self.openrank,
            self.icebreaker,
            self.webhooks,
        ):
            await client.close()


def build_providers(
    config: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Providers:
    """Construct all provider clients from settings."""
    timeout = config.http_timeout_seconds
    return Providers(
        neynar=NeynarClient(
            api_key=config.neynar_api_key,
            base_url=config.neynar_base_url,
            timeout_seconds=timeout,
            transport=transport,
        ),
        warpcast=WarpcastClient(
            token=config.warpcast_token,
            base_url=config.warpcast_base_url,
            timeout_seconds=timeout,
            transport=transport,
        ),
        onchain=OnchainClient(config.rpc_urls, timeout_seconds=timeout, transport=transport),
        simplehash=SimplehashClient(
            api_key=config.simplehash_api_key,
            base_url=config.simplehash_url,
            timeout_seconds=timeout,
            transport=transport,
        ),
        botornot=BotOrNotClient(
            base_url=config.botornot_url,
            timeout_seconds=config.check_timeout_seconds,
            transport=transport,
        ),
        airstack=AirstackClient(
            api_key=config.airstack_api_key,
            url=config.airstack_url,
            timeout_seconds=timeout,
            transport=transport,
        ),
        openrank=OpenRankClient(
            api_key=config.openrank_api_key,
            base_url=config.openrank_base_url,
            timeout_seconds=timeout,
            transport=transport,
        ),
        icebreaker=IcebreakerClient(
            base_url=config.icebreaker_url,
            timeout_seconds=timeout,
            transport=transport,
        ),
        webhooks=RuleWebhookClient(transport=transport),
    )


__all__ = [
    "Providers",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "build_providers",
]
