"""Entry points for inbound events: cast webhooks and join requests."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from modbot.core.errors import ChannelNotFoundError, InvalidEventError
from modbot.core.settings import settings
from modbot.models.cast_log import (
    CAST_STATUS_FAILED,
    CAST_STATUS_IGNORED,
    CAST_STATUS_PROCESSED,
)
from modbot.providers import Providers
from modbot.repositories import ModerationRepository
from modbot.schemas import Cast, JoinResponse, WebhookPayload
from modbot.services.cache import CacheService
from modbot.services.moderation import ModerationService

logger = logging.getLogger(__name__)

CAST_CREATED = "cast.created"
INVITE_SENT = "Invite sent!"
NOT_ELIGIBLE = "You are not eligible to join"
TRY_AGAIN_LATER = "Something went wrong. Please try again later."


def _channel_id(data: dict[str, Any]) -> str | None:
    channel = data.get("channel")
    if isinstance(channel, dict) and isinstance(channel.get("id"), str) and channel["id"]:
        return channel["id"].lower()
    return None


class WebhookIntake:
    """Validates inbound events and hands them to the moderation service.

    Casts are deduplicated twice: a short cache claim guards against
    concurrent redelivery and the ``cast_log`` table against reprocessing.
    """

    def __init__(
        self,
        repository: ModerationRepository,
        moderation: ModerationService,
        providers: Providers,
        cache: CacheService,
        *,
        dedup_ttl_seconds: int | None = None,
    ) -> None:
        self.repository = repository
        self.moderation = moderation
        self.providers = providers
        self.cache = cache
        self.dedup_ttl_seconds = dedup_ttl_seconds or settings.cast_dedup_ttl_seconds

    async def handle_cast_created(self, payload: WebhookPayload) -> str:
        """Moderate the cast in a ``cast.created`` event.

        Returns:
            Short status message for the webhook source

        Raises:
            InvalidEventError: If the event is not a well-formed cast
            TransientCheckError: If the decision should be retried later
        """
        if payload.type != CAST_CREATED:
            raise InvalidEventError("Invalid webhook type")

        channel_id = _channel_id(payload.data)
        if channel_id is None:
            raise InvalidEventError("Invalid channel name")

        try:
            cast = Cast.model_validate(payload.data)
        except ValidationError as exc:
            raise InvalidEventError("Invalid cast payload") from exc

        if cast.is_reply:
            return "Ignoring reply"

        channel = self.repository.find_channel(channel_id)
        if channel is None:
            logger.info("[%s] not moderated, ignoring %s", channel_id, cast.hash)
            return f"Channel {channel_id} is not moderated"
        if not channel.active:
            self.repository.record_cast(
                cast_hash=cast.hash,
                channel_id=channel.id,
                author_fid=cast.author.fid,
                status=CAST_STATUS_IGNORED,
            )
            self.repository.session.commit()
            return f"Channel {channel_id} is not active"

        existing = self.repository.get_cast_log(cast.hash)
        if existing is not None and existing.status != CAST_STATUS_FAILED:
            return "Already processed"

        claim_key = f"cast:{cast.hash}"
        if not await self.cache.claim(claim_key, self.dedup_ttl_seconds):
            return "Already processing"

        try:
            logs = await self.moderation.validate_cast(channel, cast)
        except Exception as exc:
            await self.cache.release(claim_key)
            self._record_failure(channel.id, cast, exc)
            raise

        self.repository.record_cast(
            cast_hash=cast.hash,
            channel_id=channel.id,
            author_fid=cast.author.fid,
            status=CAST_STATUS_PROCESSED,
            data={"actions": [log.action for log in logs]},
        )
        self.repository.session.commit()
        logger.info(
            "[%s] processed %s: %s", channel.id, cast.hash, ", ".join(log.action for log in logs)
        )
        return f"Processed {cast.hash}"

    def _record_failure(self, channel_id: str, cast: Cast, exc: Exception) -> None:
        logger.error("[%s] failed to moderate %s: %s", channel_id, cast.hash, exc)
        self.repository.session.rollback()
        self.repository.record_cast(
            cast_hash=cast.hash,
            channel_id=channel_id,
            author_fid=cast.author.fid,
            status=CAST_STATUS_FAILED,
            data={"error": str(exc)},
        )
        self.repository.session.commit()

    async def handle_join_request(self, channel_id: str, fid: int) -> JoinResponse:
        """Decide whether ``fid`` gets an invite to ``channel_id``.

        Raises:
            ChannelNotFoundError: If the channel is not moderated
        """
        channel = self.repository.find_channel(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)

        try:
            user = await self.providers.neynar.get_user(fid)
            if user is None:
                return JoinResponse(message=f"User {fid} not found")
            logs = await self.moderation.validate_user(channel, user)
        except Exception:
            logger.exception("[%s] join request for fid %s failed", channel.id, fid)
            return JoinResponse(message=TRY_AGAIN_LATER)

        if not logs:
            return JoinResponse(message=NOT_ELIGIBLE)
        first = logs[0]
        if first.action == "like":
            return JoinResponse(message=INVITE_SENT, action=first.action)
        return JoinResponse(message=first.reason or NOT_ELIGIBLE, action=first.action)
