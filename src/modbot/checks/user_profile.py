"""Checks over the user's own profile: bio, display name, fid and badges."""

from __future__ import annotations

from typing import Any

from .base import ArgSpec, CheckContext, CheckResult, CheckSet

POWER_BADGE_TTL_SECONDS = 60 * 60 * 4

checks = CheckSet()


def _contains(haystack: str, needle: str, case_sensitive: bool) -> bool:
    if case_sensitive:
        return needle in haystack
    return needle.lower() in haystack.lower()


def _positive_int(value: Any) -> int | None:
    """Treat empty and zero thresholds as unset."""
    if value in (None, ""):
        return None
    number = int(value)
    return number or None


_SEARCH_ARGS = {
    "searchText": ArgSpec(
        type="string",
        friendly_name="Search Text",
        description="The text to search for",
        required=True,
    ),
    "caseSensitive": ArgSpec(
        type="boolean",
        friendly_name="Case Sensitive",
        description="If checked, 'abc' is different from 'ABC'",
    ),
}


@checks.register(
    "userProfileContainsText",
    friendly_name="Profile Contains Text",
    description="Check if the user's profile contains a specific string",
    allow_multiple=True,
    invertable=True,
    args=_SEARCH_ARGS,
)
async def user_profile_contains_text(ctx: CheckContext) -> CheckResult:
    search_text = str(ctx.args.get("searchText", ""))
    bio = ctx.user.profile.bio.text or ""
    found = _contains(bio, search_text, bool(ctx.args.get("caseSensitive")))
    if found:
        return CheckResult(True, f'Profile contains "{search_text}"')
    return CheckResult(False, f'Profile does not contain "{search_text}"')


@checks.register(
    "userDisplayNameContainsText",
    friendly_name="User Display Name Contains Text",
    description="Check if the user's display name contains a specific string",
    allow_multiple=True,
    invertable=True,
    args=_SEARCH_ARGS,
)
async def user_display_name_contains_text(ctx: CheckContext) -> CheckResult:
    if not ctx.user.display_name:
        return CheckResult(False, "User has no display name")
    search_text = str(ctx.args.get("searchText", ""))
    found = _contains(ctx.user.display_name, search_text, bool(ctx.args.get("caseSensitive")))
    if found:
        return CheckResult(True, f'Display name contains "{search_text}"')
    return CheckResult(False, f'Display name does not contain "{search_text}"')


@checks.register(
    "userFollowerCount",
    friendly_name="User Follower Count",
    description="Check if the user's follower count is within a range",
    args={
        "min": ArgSpec(
            type="number",
            friendly_name="Less than",
            placeholder="No Minimum",
            description="If you enter 10, the rule will trigger if the user has less than 10 followers.",
        ),
        "max": ArgSpec(
            type="number",
            friendly_name="More than",
            placeholder="No Maximum",
            description="If you enter 50, the rule will trigger if the user has more than 50 followers.",
        ),
    },
)
async def user_follower_count(ctx: CheckContext) -> CheckResult:
    """Triggers when the follower count falls outside ``[min, max]``."""
    minimum = _positive_int(ctx.args.get("min"))
    maximum = _positive_int(ctx.args.get("max"))
    followers = ctx.user.follower_count

    if minimum is not None and followers < minimum:
        return CheckResult(True, f"User has less than {minimum} followers")
    if maximum is not None and followers > maximum:
        return CheckResult(True, f"User has more than {maximum} followers")
    return CheckResult(False, "User follower count is within limits")


@checks.register(
    "userFidInList",
    friendly_name="User in List",
    description="Check if the cast author is on a list",
    invertable=True,
    args={
        "fids": ArgSpec(
            type="farcasterUserPickerMulti",
            friendly_name="Farcaster Usernames",
            required=True,
            placeholder="Enter a username...",
        ),
    },
)
async def user_fid_in_list(ctx: CheckContext) -> CheckResult:
    options = ctx.args.get("fids") or []
    listed = any(int(option["value"]) == ctx.user.fid for option in options)
    if listed:
        return CheckResult(True, f"@{ctx.user.username} is in the list")
    return CheckResult(False, f"@{ctx.user.username} is not in the list")


@checks.register(
    "userFidInRange",
    friendly_name="User FID",
    description="Check if the user's FID is less than or greater than a certain value",
    args={
        "minFid": ArgSpec(
            type="number",
            friendly_name="Less than",
            placeholder="No Minimum",
            description="Setting a value of 5 would trigger this rule if the fid is 1 thru 4",
        ),
        "maxFid": ArgSpec(
            type="number",
            friendly_name="More than",
            description="Setting a value of 10 would trigger this rule if the fid is 11 or above.",
        ),
    },
)
async def user_fid_in_range(ctx: CheckContext) -> CheckResult:
    """Triggers when the fid is below ``minFid`` or above ``maxFid``."""
    fid = ctx.user.fid
    min_fid = _positive_int(ctx.args.get("minFid"))
    max_fid = _positive_int(ctx.args.get("maxFid"))

    if min_fid is not None and fid < min_fid:
        return CheckResult(True, f"FID #{fid} is less than {min_fid}")
    if max_fid is not None and fid > max_fid:
        return CheckResult(True, f"FID #{fid} is greater than {max_fid}")

    if min_fid is not None and max_fid is not None:
        message = f"FID #{fid} is not between {min_fid} and {max_fid}"
    elif min_fid is not None:
        message = f"FID #{fid} is greater than {min_fid}"
    elif max_fid is not None:
        message = f"FID #{fid} is less than {max_fid}"
    else:
        message = ""
    return CheckResult(False, message)


@checks.register(
    "userDoesNotHoldPowerBadge",
    friendly_name="Power Badge",
    description="Verify if the user has a power badge, issued to users likely not to be spammers",
    inverted_description="Check for users who *do* hold the power badge",
    invertable=True,
    author="neynar",
    author_url="https://neynar.com/",
)
async def user_holds_power_badge(ctx: CheckContext) -> CheckResult:
    fids = await ctx.cache.get_set(
        "powerbadge",
        POWER_BADGE_TTL_SECONDS,
        ctx.providers.neynar.power_badge_fids,
    )
    if ctx.user.fid in fids:
        return CheckResult(True, "User holds a power badge")
    return CheckResult(False, "User does not hold a power badge")
