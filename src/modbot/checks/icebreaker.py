"""Icebreaker profile checks: credentials, linked accounts, POAPs and guilds."""

from __future__ import annotations

from typing import Any

from .base import ArgSpec, CheckContext, CheckFunction, CheckResult, CheckSet

checks = CheckSet(author="Icebreaker", author_url="https://icebreaker.xyz")


def _not_found(ctx: CheckContext) -> CheckResult:
    return CheckResult(False, f"@{ctx.user.username} not found in Icebreaker")


def has_credential(credentials: list[dict[str, Any]] | None, name: str, exact: bool = False) -> bool:
    """Whether any credential matches ``name`` exactly or as a prefix."""
    if not credentials or not name:
        return False
    if exact:
        return any(c.get("name") == name for c in credentials)
    return any(str(c.get("name", "")).startswith(name) for c in credentials)


async def _credential_result(ctx: CheckContext, credential: str, exact: bool) -> CheckResult:
    profile = await ctx.providers.icebreaker.profile_by_fid(ctx.user.fid)
    if profile is None:
        return _not_found(ctx)
    username = ctx.user.username
    if has_credential(profile.get("credentials"), credential, exact):
        return CheckResult(True, f"@{username} has the {credential} credential")
    return CheckResult(False, f"@{username} does not have the {credential} credential")


def _fixed_credential(credential: str, exact: bool) -> CheckFunction:
    async def check(ctx: CheckContext) -> CheckResult:
        return await _credential_result(ctx, credential, exact)

    return check


checks.register(
    "hasIcebreakerHuman",
    friendly_name="Icebreaker: Has Human",
    description="Check if the user has the Icebreaker Human credential",
    invertable=True,
)(_fixed_credential("Human", exact=True))

checks.register(
    "hasIcebreakerQBuilder",
    friendly_name="Icebreaker: Has QBuilder",
    description="Check if the user has the Icebreaker QBuilder credential",
    invertable=True,
)(_fixed_credential("qBuilder", exact=True))

checks.register(
    "hasIcebreakerVerified",
    friendly_name="Icebreaker: Has Verified Work Domain",
    description="Check if the user has the Icebreaker Verified credential for a work domain",
    invertable=True,
)(_fixed_credential("Verified:", exact=False))


@checks.register(
    "hasIcebreakerCredential",
    friendly_name="Icebreaker: Has Credential",
    description="Check if the user has a specific Icebreaker credential",
    allow_multiple=True,
    invertable=True,
    args={
        "credential": ArgSpec(
            type="string",
            friendly_name="Credential",
            required=True,
            placeholder="Enter a credential...",
            description="The name of the credential",
        ),
        "exactMatch": ArgSpec(
            type="boolean",
            friendly_name="Exact credential match",
            default=False,
            description="Exactly matches the full name of the credential",
        ),
    },
)
async def has_icebreaker_credential(ctx: CheckContext) -> CheckResult:
    return await _credential_result(
        ctx,
        str(ctx.args.get("credential", "")),
        bool(ctx.args.get("exactMatch")),
    )


@checks.register(
    "hasIcebreakerLinkedAccount",
    friendly_name="Icebreaker: Has Linked Account",
    description="Check if the user has a specific type of linked account",
    allow_multiple=True,
    invertable=True,
    args={
        "account": ArgSpec(
            type="string",
            friendly_name="Account",
            required=True,
            placeholder="Choose one of linkedin, twitter, github, etc.",
            description="The type of account required. Consult Icebreaker Alloy for all types supported",
        ),
        "verified": ArgSpec(
            type="boolean",
            friendly_name="Require verified account",
            default=False,
            description="If enabled, only passes if the account has been verified",
        ),
    },
)
async def has_icebreaker_linked_account(ctx: CheckContext) -> CheckResult:
    account = str(ctx.args.get("account", ""))
    verified = bool(ctx.args.get("verified"))
    profile = await ctx.providers.icebreaker.profile_by_fid(ctx.user.fid)
    if profile is None:
        return _not_found(ctx)

    linked = any(
        channel.get("type") == account and (not verified or channel.get("isVerified"))
        for channel in profile.get("channels") or []
    )
    qualifier = "and verified " if verified else ""
    if linked:
        return CheckResult(True, f"@{ctx.user.username} has linked {qualifier}{account}")
    return CheckResult(False, f"@{ctx.user.username} does not have linked {qualifier}{account}")


@checks.register(
    "hasPOAP",
    friendly_name="Icebreaker: Has POAP",
    description="Check via Icebreaker if the user has a specific POAP",
    allow_multiple=True,
    invertable=True,
    args={
        "eventId": ArgSpec(
            type="string",
            friendly_name="POAP Event ID",
            required=True,
            placeholder="Enter a POAP event ID...",
            description="The POAP event ID to check for",
        ),
    },
)
async def has_poap(ctx: CheckContext) -> CheckResult:
    event_id = str(ctx.args.get("eventId", ""))
    profile = await ctx.providers.icebreaker.profile_by_fid(ctx.user.fid)
    if profile is None:
        return _not_found(ctx)

    attended = any(
        event.get("source") == "poap" and str(event.get("id")) == event_id
        for event in profile.get("events") or []
    )
    if attended:
        return CheckResult(True, f"@{ctx.user.username} has the POAP {event_id}")
    return CheckResult(False, f"@{ctx.user.username} does not have the POAP {event_id}")


@checks.register(
    "hasGuildRole",
    friendly_name="Icebreaker: Has Guild Role",
    description="Check via Icebreaker if the user is a member of a Guild",
    allow_multiple=True,
    invertable=True,
    args={
        "guildId": ArgSpec(
            type="number",
            friendly_name="Guild ID",
            required=True,
            placeholder="Enter a Guild ID...",
            description="The Guild ID to check for",
        ),
        "roleId": ArgSpec(
            type="number",
            friendly_name="Role ID",
            placeholder="Enter a Role ID...",
            description="Optional role ID to check for",
        ),
    },
)
async def has_guild_role(ctx: CheckContext) -> CheckResult:
    guild_id = int(ctx.args["guildId"])
    role_id = ctx.args.get("roleId")
    role_id = int(role_id) if role_id not in (None, "") else None

    profile = await ctx.providers.icebreaker.profile_by_fid(ctx.user.fid)
    if profile is None:
        return _not_found(ctx)

    guild = next((g for g in profile.get("guilds") or [] if g.get("guildId") == guild_id), None)
    member = guild is not None and (role_id is None or role_id in (guild.get("roleIds") or []))

    role_message = f" with role {role_id}" if role_id is not None else ""
    if member:
        return CheckResult(True, f"@{ctx.user.username} has the Guild {guild_id}{role_message}")
    return CheckResult(False, f"@{ctx.user.username} does not have the Guild {guild_id}{role_message}")
