"""Check registry primitives.

A check is an asynchronous predicate over a channel, a user and (on the cast
path) a cast. Each check is registered with metadata describing where it may
be used and which arguments it takes. The registry is a closed table built at
import time from the provider modules in this package.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Literal

from modbot.core.errors import EvaluationTimeoutError, RuleConfigurationError, UnknownCheckError
from modbot.schemas.rules import ConditionRule, LogicalRule, iter_conditions

if TYPE_CHECKING:
    from modbot.providers import Providers
    from modbot.repositories.moderation_repo import ModerationRepository
    from modbot.schemas.channel import ModeratedChannelConfig
    from modbot.schemas.farcaster import Cast, User
    from modbot.services.cache import CacheService

CheckCategory = Literal["all", "inclusion", "exclusion", "cast"]
CheckType = Literal["user", "cast"]
RuleSetKind = Literal["inclusion", "exclusion"]

DEFAULT_AUTHOR = "modbot"
DEFAULT_AUTHOR_URL = "https://modbot.sh"


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single check: whether it triggered and why."""

    result: bool
    message: str


@dataclass(frozen=True)
class ArgSpec:
    """Description of one check argument, as rendered by the rule editor."""

    type: str
    friendly_name: str
    description: str = ""
    required: bool = False
    default: Any = None
    placeholder: str | None = None
    pattern: str | None = None
    options: tuple[Mapping[str, str], ...] = ()
    # Shown instead of the generic message when a required value is absent.
    missing_message: str | None = None
    # Raises RuleConfigurationError for values the check cannot run with.
    validator: Callable[[Any], None] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "friendlyName": self.friendly_name,
            "description": self.description,
            "required": self.required,
        }
        if self.default is not None:
            data["defaultValue"] = self.default
        if self.placeholder:
            data["placeholder"] = self.placeholder
        if self.pattern:
            data["pattern"] = self.pattern
        if self.options:
            data["options"] = [dict(option) for option in self.options]
        return data


@dataclass
class CheckContext:
    """Everything a check may read while it runs."""

    channel: ModeratedChannelConfig
    user: User
    rule: ConditionRule
    providers: Providers
    cache: CacheService
    cast: Cast | None = None
    repository: ModerationRepository | None = None
    simulation: bool = False
    # Absolute deadline on the running loop's clock, None when unbounded.
    deadline: float | None = None
    check_timeout: float = 5.0

    @property
    def args(self) -> dict[str, Any]:
        return self.rule.args

    def timeout(self, default: float | None = None) -> float:
        """Per-call timeout, capped by the remaining evaluation deadline.

        Raises:
            EvaluationTimeoutError: If the deadline has already passed
        """
        budget = self.check_timeout if default is None else default
        if self.deadline is None:
            return budget
        remaining = self.deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise EvaluationTimeoutError("Rule evaluation deadline exceeded")
        return min(budget, remaining)


CheckFunction = Callable[[CheckContext], Awaitable[CheckResult]]


def _is_whole_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return value.is_integer()
    if isinstance(value, str):
        try:
            int(value)
        except ValueError:
            return False
        return True
    return False


@dataclass(frozen=True)
class CheckDefinition:
    """A registered check and its metadata."""

    name: str
    function: CheckFunction
    friendly_name: str
    description: str
    check_type: CheckType
    category: CheckCategory
    allow_multiple: bool
    invertable: bool
    author: str = DEFAULT_AUTHOR
    author_url: str | None = DEFAULT_AUTHOR_URL
    hidden: bool = False
    inverted_description: str | None = None
    fid_gated: frozenset[int] | None = None
    channel_gated: frozenset[str] | None = None
    args: Mapping[str, ArgSpec] = field(default_factory=dict)

    def available_to(self, fid: int | None, channel_id: str | None) -> bool:
        """Whether gating allows ``fid`` in ``channel_id`` to use this check."""
        if self.fid_gated is not None and (fid is None or fid not in self.fid_gated):
            return False
        if self.channel_gated is not None and (
            channel_id is None or channel_id not in self.channel_gated
        ):
            return False
        return True

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "author": self.author,
            "author_url": self.author_url,
            "friendly_name": self.friendly_name,
            "description": self.description,
            "check_type": self.check_type,
            "category": self.category,
            "allow_multiple": self.allow_multiple,
            "invertable": self.invertable,
            "inverted_description": self.inverted_description,
            "hidden": self.hidden,
            "args": {name: spec.to_dict() for name, spec in self.args.items()},
        }


class CheckSet:
    """Definitions contributed by one provider module."""

    def __init__(self, *, author: str = DEFAULT_AUTHOR, author_url: str | None = DEFAULT_AUTHOR_URL) -> None:
        self._author = author
        self._author_url = author_url
        self._definitions: list[CheckDefinition] = []

    def register(
        self,
        name: str,
        *,
        friendly_name: str,
        description: str,
        check_type: CheckType = "user",
        category: CheckCategory = "all",
        allow_multiple: bool = False,
        invertable: bool = False,
        hidden: bool = False,
        inverted_description: str | None = None,
        fid_gated: Iterable[int] | None = None,
        channel_gated: Iterable[str] | None = None,
        args: Mapping[str, ArgSpec] | None = None,
        author: str | None = None,
        author_url: str | None = None,
    ) -> Callable[[CheckFunction], CheckFunction]:
        """Decorator registering ``function`` under ``name``."""

        def decorator(function: CheckFunction) -> CheckFunction:
            self._definitions.append(
                CheckDefinition(
                    name=name,
                    function=function,
                    friendly_name=friendly_name,
                    description=description,
                    check_type=check_type,
                    category=category,
                    allow_multiple=allow_multiple,
                    invertable=invertable,
                    author=author or self._author,
                    author_url=author_url or self._author_url,
                    hidden=hidden,
                    inverted_description=inverted_description,
                    fid_gated=frozenset(fid_gated) if fid_gated is not None else None,
                    channel_gated=frozenset(channel_gated) if channel_gated is not None else None,
                    args=MappingProxyType(dict(args or {})),
                )
            )
            return function

        return decorator

    def __iter__(self) -> Iterator[CheckDefinition]:
        return iter(self._definitions)


class CheckRegistry:
    """Closed lookup table from rule name to check definition."""

    def __init__(self, definitions: Iterable[CheckDefinition]) -> None:
        table: dict[str, CheckDefinition] = {}
        for definition in definitions:
            if definition.name in table:
                raise ValueError(f"Duplicate check registration: {definition.name}")
            table[definition.name] = definition
        self._definitions = MappingProxyType(table)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def names(self) -> list[str]:
        return list(self._definitions)

    def definition(self, name: str) -> CheckDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise UnknownCheckError(name) from None

    def lookup(self, name: str) -> CheckFunction:
        """Resolve a rule name to its check function.

        Raises:
            UnknownCheckError: If no check is registered under ``name``
        """
        return self.definition(name).function

    def definitions_for(
        self,
        fid: int | None = None,
        channel_id: str | None = None,
    ) -> list[CheckDefinition]:
        """Definitions visible to ``fid`` configuring ``channel_id``."""
        return [d for d in self._definitions.values() if d.available_to(fid, channel_id)]

    def validate_tree(
        self,
        rule: ConditionRule | LogicalRule,
        *,
        rule_set: RuleSetKind | None = None,
    ) -> None:
        """Check that every leaf resolves and is allowed where it is used.

        Args:
            rule: Root of the rule tree
            rule_set: Which rule set the tree belongs to, for category checks

        Raises:
            UnknownCheckError: If a leaf names an unregistered check
            RuleConfigurationError: If a check is misplaced, repeated or
                missing a required argument
        """
        counts: Counter[str] = Counter()
        for leaf in iter_conditions(rule):
            definition = self.definition(leaf.name)
            counts[leaf.name] += 1

            if (
                rule_set is not None
                and definition.category in ("inclusion", "exclusion")
                and definition.category != rule_set
            ):
                raise RuleConfigurationError(
                    f'"{definition.friendly_name.strip()}" can only be used in {definition.category} rules'
                )

            for arg_name, spec in definition.args.items():
                value = leaf.args.get(arg_name)
                if value is None or value == "" or value == []:
                    if spec.required:
                        raise RuleConfigurationError(
                            spec.missing_message
                            or f'"{definition.friendly_name.strip()}" requires {spec.friendly_name}'
                        )
                    continue
                if spec.type == "number" and not _is_whole_number(value):
                    raise RuleConfigurationError(
                        f'"{definition.friendly_name.strip()}" expects a whole number for {spec.friendly_name}'
                    )
                if spec.validator is not None:
                    spec.validator(value)

        for name, count in counts.items():
            definition = self.definition(name)
            if count > 1 and not definition.allow_multiple:
                raise RuleConfigurationError(
                    f'"{definition.friendly_name.strip()}" can only be used once per rule set'
                )
