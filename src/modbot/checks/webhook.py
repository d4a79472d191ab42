"""Channel-owner webhook check: an external service decides the outcome."""

from __future__ import annotations

import logging
from typing import Any

from modbot.providers.http import HTTP_BAD_REQUEST, HTTP_OK, ProviderError, ProviderTimeoutError

from .base import ArgSpec, CheckContext, CheckResult, CheckSet

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT_SECONDS = 5
MAX_MESSAGE_LENGTH = 75

checks = CheckSet()


def _response_message(body: Any) -> str | None:
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"][:MAX_MESSAGE_LENGTH]
    return None


@checks.register(
    "webhook",
    friendly_name="Webhook",
    description="Use an external service to determine if the rule should be triggered.",
    args={
        "url": ArgSpec(
            type="string",
            friendly_name="URL",
            required=True,
            placeholder="https://example.com/webhook",
            description=(
                "A post request will be made with { cast, user } data. If the webhook returns a 200, "
                "the rule will be triggered, if it returns a 400, it will not. Return a json response "
                "in either case with a message to include a reason in the activity logs. Maximum of "
                "75 characters. A response must return within 5 seconds."
            ),
        ),
        "failureMode": ArgSpec(
            type="select",
            friendly_name="If the webhook fails or times out...",
            required=True,
            default="doNotTrigger",
            options=(
                {"value": "trigger", "label": "Trigger this rule"},
                {"value": "doNotTrigger", "label": "Do not trigger this rule"},
            ),
        ),
    },
)
async def webhook(ctx: CheckContext) -> CheckResult:
    """POST ``{user, cast}`` and map the status to a result.

    200 triggers the rule and 400 does not. Timeouts and any other outcome
    resolve according to ``failureMode``.
    """
    url = str(ctx.args["url"])
    trigger_on_failure = ctx.args.get("failureMode") == "trigger"
    payload = {
        "user": ctx.user.model_dump(mode="json"),
        "cast": ctx.cast.model_dump(mode="json") if ctx.cast is not None else None,
    }

    try:
        response = await ctx.providers.webhooks.post(
            url, payload, timeout=ctx.timeout(WEBHOOK_TIMEOUT_SECONDS)
        )
    except ProviderTimeoutError:
        logger.warning("[%s] webhook to %s timed out", ctx.channel.id, url)
        if trigger_on_failure:
            return CheckResult(
                True,
                f"Webhook didn't respond within {WEBHOOK_TIMEOUT_SECONDS}s, rule is set to trigger on failure",
            )
        return CheckResult(
            False,
            f"Webhook did not respond within {WEBHOOK_TIMEOUT_SECONDS}s, rule is set to not trigger on failure. ",
        )
    except ProviderError as exc:
        logger.warning("[%s] webhook to %s failed: %s", ctx.channel.id, url, exc)
        return _failure(trigger_on_failure)

    if response.status_code in (HTTP_OK, HTTP_BAD_REQUEST):
        try:
            body = response.json()
        except ValueError:
            body = None
        triggered = response.status_code == HTTP_OK
        default = "Webhook rule triggered" if triggered else "Webhook rule did not trigger"
        return CheckResult(triggered, _response_message(body) or default)

    logger.warning(
        "[%s] webhook to %s failed with status %s", ctx.channel.id, url, response.status_code
    )
    return _failure(trigger_on_failure)


def _failure(trigger_on_failure: bool) -> CheckResult:
    if trigger_on_failure:
        return CheckResult(True, "Webhook failed but rule is set to trigger on failure")
    return CheckResult(False, "Webhook failed and rule is set to not trigger on failure")
