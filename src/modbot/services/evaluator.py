"""Rule tree evaluation.

Leaves resolve to registered checks; ``AND`` nodes run their children
concurrently and ``OR`` nodes either race them (cast path) or try them in
order and stop at the first pass (join path). Every evaluation runs under a
tree-wide deadline and a cap on concurrently running checks.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from modbot.checks import CheckContext, CheckRegistry
from modbot.core.errors import EvaluationTimeoutError
from modbot.schemas.rules import ConditionRule, LogicalRule

if TYPE_CHECKING:
    from modbot.providers import Providers
    from modbot.repositories.moderation_repo import ModerationRepository
    from modbot.schemas.channel import ModeratedChannelConfig
    from modbot.schemas.farcaster import Cast, User
    from modbot.services.cache import CacheService

logger = logging.getLogger(__name__)

NO_RULES_EXPLANATION = "No rules"


class OrStrategy(Enum):
    """How ``OR`` nodes run their children."""

    CONCURRENT = "concurrent"
    SHORT_CIRCUIT = "short_circuit"


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of evaluating a (sub)tree.

    ``rule`` is the node that decided the outcome: the passing child of an
    ``OR``, otherwise the evaluated node itself.
    """

    passed_rule: bool
    explanation: str
    rule: ConditionRule | LogicalRule


@dataclass
class _Run:
    """State shared by every node of one evaluation."""

    channel: ModeratedChannelConfig
    user: User
    cast: Cast | None
    simulation: bool
    repository: ModerationRepository | None
    or_strategy: OrStrategy
    semaphore: asyncio.Semaphore
    deadline: float


async def _cancel(tasks: Iterable[asyncio.Future]) -> None:
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


class RuleEvaluator:
    """Evaluates rule trees against a user and, optionally, a cast."""

    def __init__(
        self,
        registry: CheckRegistry,
        providers: Providers,
        cache: CacheService,
        *,
        max_concurrency: int = 8,
        timeout_seconds: float = 30.0,
        check_timeout_seconds: float = 5.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.registry = registry
        self.providers = providers
        self.cache = cache
        self.max_concurrency = max_concurrency
        self.timeout_seconds = timeout_seconds
        self.check_timeout_seconds = check_timeout_seconds

    async def evaluate(
        self,
        rule: ConditionRule | LogicalRule,
        *,
        channel: ModeratedChannelConfig,
        user: User,
        cast: Cast | None = None,
        simulation: bool = False,
        repository: ModerationRepository | None = None,
        or_strategy: OrStrategy = OrStrategy.CONCURRENT,
    ) -> EvaluationResult:
        """Evaluate ``rule`` and explain the outcome.

        Args:
            rule: Root of the rule tree
            channel: Channel whose configuration is being applied
            user: Subject of the evaluation
            cast: Cast under evaluation, None for join requests
            simulation: Whether checks must avoid side effects
            repository: Persistence for checks that touch the audit log
            or_strategy: How ``OR`` nodes run their children

        Returns:
            Whether the tree passed, the explanation and the deciding rule

        Raises:
            UnknownCheckError: If a leaf names an unregistered check
            EvaluationTimeoutError: If the tree misses its deadline
        """
        loop = asyncio.get_running_loop()
        run = _Run(
            channel=channel,
            user=user,
            cast=cast,
            simulation=simulation,
            repository=repository,
            or_strategy=or_strategy,
            semaphore=asyncio.Semaphore(self.max_concurrency),
            deadline=loop.time() + self.timeout_seconds,
        )
        try:
            return await asyncio.wait_for(self._evaluate(rule, run), self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "[%s] rule evaluation for fid %s exceeded %ss",
                channel.id,
                user.fid,
                self.timeout_seconds,
            )
            raise EvaluationTimeoutError(
                f"Rule evaluation exceeded {self.timeout_seconds}s"
            ) from exc

    async def _evaluate(self, rule: ConditionRule | LogicalRule, run: _Run) -> EvaluationResult:
        if isinstance(rule, ConditionRule):
            return await self._evaluate_condition(rule, run)
        if not rule.conditions:
            return EvaluationResult(False, NO_RULES_EXPLANATION, rule)
        if rule.operation == "AND":
            return await self._all_of(rule, run)
        if run.or_strategy is OrStrategy.SHORT_CIRCUIT:
            return await self._any_in_order(rule, run)
        return await self._any_concurrent(rule, run)

    async def _evaluate_condition(self, rule: ConditionRule, run: _Run) -> EvaluationResult:
        check = self.registry.lookup(rule.name)
        ctx = CheckContext(
            channel=run.channel,
            user=run.user,
            rule=rule,
            providers=self.providers,
            cache=self.cache,
            cast=run.cast,
            repository=run.repository,
            simulation=run.simulation,
            deadline=run.deadline,
            check_timeout=self.check_timeout_seconds,
        )
        async with run.semaphore:
            outcome = await check(ctx)
        return EvaluationResult(outcome.result, outcome.message, rule)

    def _spawn(self, rule: LogicalRule, run: _Run) -> list[asyncio.Task[EvaluationResult]]:
        return [asyncio.ensure_future(self._evaluate(child, run)) for child in rule.conditions]

    async def _all_of(self, rule: LogicalRule, run: _Run) -> EvaluationResult:
        tasks = self._spawn(rule, run)
        try:
            results: list[EvaluationResult] = await asyncio.gather(*tasks)
        finally:
            await _cancel(tasks)

        for result in results:
            if not result.passed_rule:
                return EvaluationResult(False, result.explanation, rule)
        return EvaluationResult(True, ", ".join(r.explanation for r in results), rule)

    async def _any_concurrent(self, rule: LogicalRule, run: _Run) -> EvaluationResult:
        """Resolve to the first passing child in declaration order.

        Returns as soon as every child before the earliest pass has failed;
        the remaining children are cancelled.
        """
        tasks = self._spawn(rule, run)
        index = {task: position for position, task in enumerate(tasks)}
        results: list[EvaluationResult | None] = [None] * len(tasks)
        pending: set[asyncio.Task[EvaluationResult]] = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    results[index[task]] = task.result()
                for result in results:
                    if result is None:
                        break
                    if result.passed_rule:
                        return result
        finally:
            await _cancel(tasks)

        return self._all_failed(rule, [r for r in results if r is not None])

    async def _any_in_order(self, rule: LogicalRule, run: _Run) -> EvaluationResult:
        failures: list[EvaluationResult] = []
        for child in rule.conditions:
            result = await self._evaluate(child, run)
            if result.passed_rule:
                return result
            failures.append(result)
        return self._all_failed(rule, failures)

    @staticmethod
    def _all_failed(rule: LogicalRule, failures: list[EvaluationResult]) -> EvaluationResult:
        if len(failures) == 1:
            return EvaluationResult(False, failures[0].explanation, rule)
        joined = ", ".join(f.explanation for f in failures)
        return EvaluationResult(False, f"Failed all checks: {joined}", rule)

