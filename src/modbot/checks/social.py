"""Social graph checks: follows, followers, channel follows and membership."""

from __future__ import annotations

from typing import Any

from .base import ArgSpec, CheckContext, CheckResult, CheckSet

checks = CheckSet()

_CHANNEL_ARG = {
    "channelSlug": ArgSpec(
        type="string",
        friendly_name="Channel ID",
        placeholder="replyguys",
        required=True,
        pattern="/^[a-zA-Z0-9-]+$/",
        description="The id of the channel to check",
    ),
}


def _describe_users(options: list[dict[str, Any]]) -> str:
    if len(options) > 1:
        return "any of " + ", ".join(f"@{option['label']}" for option in options)
    return f"@{options[0]['label']}"


def _option_fids(ctx: CheckContext) -> tuple[list[dict[str, Any]], list[int]]:
    options = ctx.args.get("users") or []
    return options, [int(option["value"]) for option in options]


@checks.register(
    "userDoesNotFollow",
    friendly_name="Following",
    description="Check if the user follows certain accounts",
    allow_multiple=True,
    args={
        "users": ArgSpec(
            type="farcasterUserPickerMulti",
            friendly_name="Farcaster Usernames",
            required=True,
            placeholder="Enter a username...",
            description=(
                "Example: If you enter jtgi and riotgoools, it will check that the user "
                "follows either jtgi or riotgools."
            ),
        ),
    },
)
async def user_follows(ctx: CheckContext) -> CheckResult:
    options, fids = _option_fids(ctx)
    if ctx.user.fid in fids:
        return CheckResult(True, "User implicitly follow themselves")

    targets = await ctx.providers.neynar.fetch_bulk_users(fids, viewer_fid=ctx.user.fid)
    followed = next(
        (u for u in targets if u.viewer_context is not None and u.viewer_context.following),
        None,
    )
    if followed is not None:
        return CheckResult(True, f"@{ctx.user.username} follows @{followed.username}")
    if not options:
        return CheckResult(False, f"@{ctx.user.username} does not follow anyone listed")
    return CheckResult(False, f"@{ctx.user.username} does not follow {_describe_users(options)}")


@checks.register(
    "userIsNotFollowedBy",
    friendly_name="Followed By",
    description="Check if the user is followed by certain accounts",
    allow_multiple=True,
    invertable=True,
    args={
        "users": ArgSpec(
            type="farcasterUserPickerMulti",
            friendly_name="Usernames",
            required=True,
            placeholder="Enter a username...",
            description=(
                "Example: If you enter jtgi and riotgoools, it will check that either jtgi "
                "or riotgools follow the user requesting an invite."
            ),
        ),
    },
)
async def user_followed_by(ctx: CheckContext) -> CheckResult:
    options, fids = _option_fids(ctx)
    if ctx.user.fid in fids:
        return CheckResult(True, "User implicitly followed by themselves")

    targets = await ctx.providers.neynar.fetch_bulk_users(fids, viewer_fid=ctx.user.fid)
    follower = next(
        (u for u in targets if u.viewer_context is not None and u.viewer_context.followed_by),
        None,
    )
    if follower is not None:
        return CheckResult(True, f"@{ctx.user.username} is followed by @{follower.username}")
    if not options:
        return CheckResult(False, f"@{ctx.user.username} is not followed by anyone listed")
    return CheckResult(False, f"@{ctx.user.username} is not followed by {_describe_users(options)}")


@checks.register(
    "userFollowsChannel",
    friendly_name="Follows Channel",
    description="Check if the user follows a channel",
    allow_multiple=True,
    args=_CHANNEL_ARG,
)
async def user_follows_channel(ctx: CheckContext) -> CheckResult:
    slug = str(ctx.args.get("channelSlug", ""))
    follows = await ctx.providers.warpcast.is_following_channel(slug, ctx.user.fid)
    if follows:
        return CheckResult(True, f"User follows /{slug}")
    return CheckResult(False, f"User does not follow /{slug}")


@checks.register(
    "userIsChannelMember",
    friendly_name="Channel Member",
    description="Check if the user is a member of a channel",
    allow_multiple=True,
    args=_CHANNEL_ARG,
)
async def user_is_channel_member(ctx: CheckContext) -> CheckResult:
    slug = str(ctx.args.get("channelSlug", ""))
    member = await ctx.providers.warpcast.is_channel_member(slug, ctx.user.fid)
    if member:
        return CheckResult(True, f"User is member of /{slug}")
    return CheckResult(False, f"User is not member of /{slug}")
