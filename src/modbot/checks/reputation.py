"""Reputation checks backed by third-party scoring services."""

from __future__ import annotations

import logging

from modbot.core.errors import TransientCheckError

from .base import ArgSpec, CheckContext, CheckResult, CheckSet

logger = logging.getLogger(__name__)

RANK_TTL_SECONDS = 60 * 60 * 6

checks = CheckSet()

_MIN_RANK_ARG = {
    "minRank": ArgSpec(
        type="number",
        friendly_name="Minimum Rank",
        required=True,
        placeholder="e.g. 100",
        description="Example: if you enter 100, the rule will check that the user's rank is 1 to 100.",
    ),
}


@checks.register(
    "isHuman",
    friendly_name="Proof of Human, by Bot or Not",
    description="Check if the cast author is a human using Bot Or Not",
    fid_gated=[5179],
    author="botornot",
    author_url="https://warpcast.com/botornot",
)
async def is_human(ctx: CheckContext) -> CheckResult:
    """Passes for accounts Bot or Not classifies as human.

    Raises:
        TransientCheckError: While the account is still being analysed
    """
    payload = await ctx.providers.botornot.classify(ctx.user.fid, timeout=ctx.timeout())
    result = payload.get("result") or {}
    is_bot = result.get("bot")
    if is_bot is None:
        raise TransientCheckError(
            f"Bot or not status for fid #{payload.get('fid', ctx.user.fid)}: {result.get('status')}"
        )
    if is_bot:
        return CheckResult(False, "Bot detected by Bot Or Not")
    return CheckResult(True, "Human detected by Bot Or Not")


@checks.register(
    "airstackSocialCapitalRank",
    friendly_name="FarRank by Airstack",
    description="Check if the user's Airstack FarRank is high enough.",
    author="Airstack",
    author_url="https://airstack.xyz",
    args=_MIN_RANK_ARG,
)
async def airstack_social_capital_rank(ctx: CheckContext) -> CheckResult:
    min_rank = int(ctx.args["minRank"])

    async def fetch() -> int | None:
        return await ctx.providers.airstack.far_rank(ctx.user.fid)

    rank = await ctx.cache.get_set(f"airstack:far-rank:{ctx.user.fid}", RANK_TTL_SECONDS, fetch)
    if rank is None:
        logger.warning("User's FarRank is not available: %s", ctx.user.fid)
        return CheckResult(False, "User's social FarRank is not available")

    if rank <= min_rank:
        return CheckResult(True, f"User FarRank is #{rank:,}, higher than #{min_rank:,}")
    return CheckResult(False, f"User's FarRank is #{rank:,}, lower than #{min_rank:,}")


@checks.register(
    "openRankGlobalEngagement",
    friendly_name="OpenRank Global Ranking",
    description="Require users to be in the top N of OpenRank's global engagement ranking",
    author="OpenRank",
    author_url="https://openrank.com",
    args=_MIN_RANK_ARG,
)
async def open_rank_global_engagement(ctx: CheckContext) -> CheckResult:
    min_rank = int(ctx.args["minRank"])
    username = ctx.user.username

    async def fetch() -> dict | None:
        return await ctx.providers.openrank.global_rank(ctx.user.fid)

    entry = await ctx.cache.get_set(f"openrank:global-rank:{ctx.user.fid}", RANK_TTL_SECONDS, fetch)
    if not entry:
        return CheckResult(False, f"@{username} not found in global rankings")

    rank = int(entry["rank"])
    if rank <= min_rank:
        return CheckResult(True, f"@{username} is ranked #{rank}")
    return CheckResult(False, f"@{username} is not a top {min_rank} account. Their current rank is #{rank}.")


@checks.register(
    "openRankChannel",
    friendly_name="OpenRank Channel Ranking",
    description="Require users to be in the top N of OpenRank's ranking for this channel",
    channel_gated=["memes", "design", "sonata"],
    author="OpenRank",
    author_url="https://openrank.com",
    args=_MIN_RANK_ARG,
)
async def open_rank_channel(ctx: CheckContext) -> CheckResult:
    min_rank = int(ctx.args["minRank"])
    username = ctx.user.username
    channel_id = ctx.channel.id

    async def fetch() -> dict | None:
        return await ctx.providers.openrank.channel_rank(channel_id, ctx.user.fid)

    entry = await ctx.cache.get_set(
        f"openrank:channel-rank:{channel_id}:{ctx.user.fid}", RANK_TTL_SECONDS, fetch
    )
    if not entry:
        return CheckResult(False, f"@{username} is not in /{channel_id} rankings")

    rank = int(entry["rank"])
    if rank <= min_rank:
        return CheckResult(True, f"@{username} is ranked #{rank} in /{channel_id}")
    return CheckResult(
        False,
        f"@{username} is not a top {min_rank} account in {channel_id}. Their current rank is #{rank}.",
    )


@checks.register(
    "subscribesOnParagraph",
    friendly_name="Subscribes on Paragraph",
    description="Check if the cast author has an active subscription on paragraph.xyz",
    allow_multiple=True,
    author="Paragraph",
    author_url="https://paragraph.xyz",
    args={
        "farcasterUser": ArgSpec(
            type="farcasterUserPicker",
            friendly_name="Farcaster Username",
            required=True,
            description="The farcaster user who owns the paragraph publication.",
        ),
    },
)
async def subscribes_on_paragraph(ctx: CheckContext) -> CheckResult:
    publisher = ctx.args["farcasterUser"]
    label = publisher.get("label", "")
    subscribers = await ctx.providers.neynar.subscriber_fids(int(publisher["value"]), "paragraph")
    if ctx.user.fid in subscribers:
        return CheckResult(True, f"User is subscribed to @{label} on Paragraph ")
    return CheckResult(False, f"User is not subscribed to @{label} on Paragraph")
