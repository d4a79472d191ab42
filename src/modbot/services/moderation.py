"""Moderation orchestration for join requests and channel casts.

Each evaluation walks bypass, cooldown, exclusion and inclusion in that order
and produces one moderation log per executed action.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modbot.checks import CheckRegistry, default_registry
from modbot.core.errors import ActionError, ChannelNotFoundError, ModerationLogNotFoundError
from modbot.core.settings import settings
from modbot.db.time import as_utc, utcnow
from modbot.providers import Providers
from modbot.repositories import ModerationRepository
from modbot.schemas import (
    Action,
    Cast,
    ConditionRule,
    LogicalRule,
    ModeratedChannelConfig,
    ModerationLogOut,
    RuleSet,
    User,
    action_of,
    is_rule_target_applicable,
    rule_to_json,
)
from modbot.services.actions import ActionDispatcher
from modbot.services.cache import CacheService
from modbot.services.evaluator import OrStrategy, RuleEvaluator

logger = logging.getLogger(__name__)

NO_RULES_REASON = "No automated curation rules configured."
SYSTEM_ACTOR = "system"


class ModerationService:
    """Service deciding what happens to a user or cast in a channel.

    Every executed action is committed together with its log entry, so a
    failing action leaves the actions before it (and their logs) in place.
    """

    def __init__(
        self,
        repository: ModerationRepository,
        providers: Providers,
        cache: CacheService,
        *,
        registry: CheckRegistry = default_registry,
        evaluator: RuleEvaluator | None = None,
        execute_on_protocol: bool | None = None,
    ) -> None:
        self.repository = repository
        self.providers = providers
        self.registry = registry
        self.evaluator = evaluator or RuleEvaluator(
            registry,
            providers,
            cache,
            max_concurrency=settings.evaluation_max_concurrency,
            timeout_seconds=settings.evaluation_timeout_seconds,
            check_timeout_seconds=settings.check_timeout_seconds,
        )
        if execute_on_protocol is None:
            execute_on_protocol = settings.execute_on_protocol
        self.dispatcher = ActionDispatcher(
            providers,
            repository,
            execute_on_protocol=execute_on_protocol,
        )

    @property
    def session(self) -> Session:
        return self.repository.session

    # Entry points

    async def validate_user(
        self,
        channel: ModeratedChannelConfig,
        user: User,
        *,
        simulation: bool = False,
    ) -> list[ModerationLogOut]:
        """Decide a join request for ``user``.

        ``OR`` nodes are tried in order and stop at the first pass, so
        expensive checks further down are skipped when possible.
        """
        return await self._moderate(channel, user, None, simulation=simulation)

    async def validate_cast(
        self,
        channel: ModeratedChannelConfig,
        cast: Cast,
        *,
        simulation: bool = False,
    ) -> list[ModerationLogOut]:
        """Decide what to do with ``cast`` posted in ``channel``.

        Adds the cooldown gate, rule set targeting and slow mode on top of
        the join-request flow. ``OR`` children run concurrently.
        """
        return await self._moderate(channel, cast.author, cast, simulation=simulation)

    async def _moderate(
        self,
        channel: ModeratedChannelConfig,
        user: User,
        cast: Cast | None,
        *,
        simulation: bool,
    ) -> list[ModerationLogOut]:
        bypass_reason = await self._bypass_reason(channel, user)
        if bypass_reason is not None:
            logger.info("[%s] %s", channel.id, bypass_reason)
            return await self._run_actions(
                [action_of("like")], channel, user, cast, reason=bypass_reason, simulation=simulation
            )

        if cast is not None:
            cooldown_reason = self._cooldown_reason(channel, user)
            if cooldown_reason is not None:
                logger.info("[%s] %s", channel.id, cooldown_reason)
                return await self._run_actions(
                    [action_of("hideQuietly")],
                    channel,
                    user,
                    cast,
                    reason=cooldown_reason,
                    simulation=simulation,
                )

        inclusion = channel.inclusion_rule_set
        if not inclusion.has_conditions:
            logger.info("[%s] No rules for channel.", channel.id)
            return await self._run_actions(
                [action_of("hideQuietly")], channel, user, cast, reason=NO_RULES_REASON, simulation=simulation
            )

        or_strategy = OrStrategy.SHORT_CIRCUIT if cast is None else OrStrategy.CONCURRENT

        exclusion = channel.exclusion_rule_set
        if self._applies(exclusion, cast):
            excluded = await self.evaluator.evaluate(
                exclusion.rule,
                channel=channel,
                user=user,
                cast=cast,
                simulation=simulation,
                repository=self.repository,
                or_strategy=or_strategy,
            )
            if excluded.passed_rule:
                return await self._run_actions(
                    exclusion.actions,
                    channel,
                    user,
                    cast,
                    reason=excluded.explanation,
                    rule=excluded.rule,
                    simulation=simulation,
                )

        # Inclusion is the fail-closed gate: its target and active flag are not
        # consulted, so every cast that reaches here is curated.
        included = await self.evaluator.evaluate(
            inclusion.rule,
            channel=channel,
            user=user,
            cast=cast,
            simulation=simulation,
            repository=self.repository,
            or_strategy=or_strategy,
        )
        if not included.passed_rule:
            return await self._run_actions(
                [action_of("hideQuietly")],
                channel,
                user,
                cast,
                reason=included.explanation,
                simulation=simulation,
            )

        logs = await self._run_actions(
            inclusion.actions,
            channel,
            user,
            cast,
            reason=included.explanation,
            rule=included.rule,
            simulation=simulation,
        )
        if cast is not None and not simulation and channel.slow_mode_hours > 0:
            self._start_slow_mode(channel, user)
        return logs

    # Gates

    async def _bypass_reason(self, channel: ModeratedChannelConfig, user: User) -> str | None:
        if channel.is_bypassed(user.fid):
            return f"@{user.username} is in the bypass list."
        owner_fid = await self.providers.warpcast.get_channel_owner(channel.id)
        if owner_fid == user.fid:
            return f"@{user.username} is the channel owner"
        if channel.exclude_cohosts and user.fid in self.repository.cohost_fids(channel.id):
            return f"@{user.username} is a cohost"
        return None

    def _cooldown_reason(self, channel: ModeratedChannelConfig, user: User) -> str | None:
        cooldown = self.repository.find_cooldown(channel.id, user.fid)
        if cooldown is None or not cooldown.active:
            return None
        if cooldown.expires_at is None:
            return f"@{user.username} is currently muted"
        expires_at = as_utc(cooldown.expires_at)
        if expires_at <= utcnow():
            return None
        return f"@{user.username} is in cooldown until {expires_at.isoformat()}"

    @staticmethod
    def _applies(rule_set: RuleSet, cast: Cast | None) -> bool:
        if not rule_set.has_conditions:
            return False
        if cast is None:
            return True
        return rule_set.active and is_rule_target_applicable(rule_set.target, cast.parent_hash)

    def _start_slow_mode(self, channel: ModeratedChannelConfig, user: User) -> None:
        expires_at = utcnow() + timedelta(hours=channel.slow_mode_hours)
        self.repository.upsert_cooldown(channel.id, user.fid, expires_at=expires_at)
        self.session.commit()
        logger.info("[%s] slow mode for fid %s until %s", channel.id, user.fid, expires_at.isoformat())

    # Actions and logs

    async def _run_actions(
        self,
        actions: Sequence[Action],
        channel: ModeratedChannelConfig,
        user: User,
        cast: Cast | None,
        *,
        reason: str,
        simulation: bool,
        rule: ConditionRule | LogicalRule | None = None,
    ) -> list[ModerationLogOut]:
        """Execute ``actions`` in order, logging each one.

        Raises:
            Exception: Whatever the failing action raised; later actions are
                skipped
        """
        logs: list[ModerationLogOut] = []
        for action in actions:
            if not simulation:
                try:
                    await self.dispatcher.dispatch(action, channel=channel, user=user, cast=cast)
                except Exception:
                    logger.exception(
                        "[%s] Error in %s action for fid %s", channel.id, action.type, user.fid
                    )
                    self.session.rollback()
                    raise
            logs.append(
                self.log_moderation_action(
                    channel.id,
                    action.type,
                    reason,
                    user,
                    cast=cast,
                    rule=rule,
                    simulation=simulation,
                )
            )
        return logs

    def log_moderation_action(
        self,
        channel_id: str,
        action_type: str,
        reason: str,
        user: User,
        *,
        cast: Cast | None = None,
        rule: ConditionRule | LogicalRule | None = None,
        simulation: bool = False,
        actor: str = SYSTEM_ACTOR,
    ) -> ModerationLogOut:
        """Record one executed action, or build its simulated counterpart.

        Simulated logs have the persisted shape but an id prefixed with
        ``sim-`` and are never written.
        """
        fields = {
            "channel_id": channel_id,
            "action": action_type,
            "actor": actor,
            "reason": reason,
            "affected_username": user.username or str(user.fid) or "unknown",
            "affected_user_avatar_url": user.pfp_url,
            "affected_user_fid": str(user.fid),
            "cast_hash": cast.hash if cast is not None else "",
            "cast_text": cast.text if cast is not None else "",
            "rule": rule_to_json(rule),
        }
        if simulation:
            now = utcnow()
            return ModerationLogOut(
                id=f"sim-{uuid.uuid4()}", created_at=now, updated_at=now, **fields
            )

        try:
            row = self.repository.create_moderation_log(**fields)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return ModerationLogOut.model_validate(row)

    # Dashboard operations

    async def approve_log(self, channel_id: str, log_id: str, actor: str) -> ModerationLogOut:
        """Manually approve a quietly hidden user or cast.

        Raises:
            ChannelNotFoundError: If the channel is not moderated
            ModerationLogNotFoundError: If the log is not in the channel
            ActionError: If the log is not a ``hideQuietly`` decision
        """
        channel = self.repository.find_channel(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        log = self.repository.get_log(channel.id, log_id)
        if log is None:
            raise ModerationLogNotFoundError(log_id)
        if log.action != "hideQuietly":
            raise ActionError(f"Cannot approve a {log.action} decision")

        user = User(
            fid=int(log.affected_user_fid),
            username=log.affected_username,
            pfp_url=log.affected_user_avatar_url,
        )
        cast = Cast(hash=log.cast_hash, author=user, text=log.cast_text) if log.cast_hash else None

        await self.dispatcher.dispatch(action_of("like"), channel=channel, user=user, cast=cast)
        if cast is not None:
            await self.dispatcher.dispatch(action_of("unhide"), channel=channel, user=user, cast=cast)

        log.action = "like"
        log.actor = actor
        self.session.commit()
        self.session.refresh(log)
        logger.info("[%s] log %s approved by %s", channel.id, log_id, actor)
        return ModerationLogOut.model_validate(log)

    def save_channel_config(self, config: ModeratedChannelConfig) -> ModeratedChannelConfig:
        """Validate ``config`` against the registry and store it.

        Raises:
            RuleConfigurationError: If either rule set cannot be used as given
        """
        self.registry.validate_tree(config.inclusion_rule_set.rule, rule_set="inclusion")
        self.registry.validate_tree(config.exclusion_rule_set.rule, rule_set="exclusion")
        try:
            row = self.repository.upsert_channel(config)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self.session.refresh(row)
        return self.repository.to_config(row)
