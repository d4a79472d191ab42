"""Static checks: logical placeholders, open admission and manual approval."""

from __future__ import annotations

import logging

from .base import CheckContext, CheckResult, CheckSet

logger = logging.getLogger(__name__)

checks = CheckSet()


@checks.register(
    "and",
    friendly_name="And",
    description="Combine multiple rules together",
    check_type="cast",
    allow_multiple=True,
    hidden=True,
)
async def and_(ctx: CheckContext) -> CheckResult:
    return CheckResult(True, "And rule always passes")


@checks.register(
    "or",
    friendly_name="Or",
    description="Combine multiple rules together",
    check_type="cast",
    allow_multiple=True,
    hidden=True,
)
async def or_(ctx: CheckContext) -> CheckResult:
    return CheckResult(True, "Or rule always passes")


@checks.register(
    "alwaysInclude",
    friendly_name="Anyone Can Join",
    description="Anyone can join your channel.",
    check_type="cast",
    category="inclusion",
)
async def always_include(ctx: CheckContext) -> CheckResult:
    return CheckResult(True, "Everything included by default")


@checks.register(
    "manuallyApprove",
    friendly_name="Manually Approve",
    description="Manually approve member requests in Activity tab",
    check_type="cast",
    category="inclusion",
)
async def manually_approve(ctx: CheckContext) -> CheckResult:
    """Never passes; a moderator approves from the activity log instead.

    Earlier log entries for the user are cleared so the pending request is the
    only one a moderator sees.
    """
    if not ctx.simulation and ctx.repository is not None:
        removed = ctx.repository.delete_logs_for_user(ctx.channel.id, str(ctx.user.fid))
        logger.info("[%s] cleared %d log(s) for fid %s", ctx.channel.id, removed, ctx.user.fid)
    return CheckResult(False, "Need manual approval by channel moderators")
