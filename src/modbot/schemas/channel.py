# src/modbot/schemas/channel.py
"""Channel configuration schemas: rule sets, bypass list and channel settings."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .actions import Action, action_of
from .rules import ConditionRule, Rule, empty_rule

RuleTarget = Literal["all", "root", "reply"]

INCLUSION_REQUIRED_MESSAGE = (
    "You need least one rule that includes casts.\n\n"
    'If you just want to specify what to exclude, add the "Always Include" rule.'
)


class SelectOption(BaseModel):
    """A Farcaster user picked in the dashboard: fid, username and avatar."""

    model_config = ConfigDict(frozen=True)

    value: int
    label: str
    icon: str | None = None


class RuleSet(BaseModel):
    """A rule tree plus the actions to run when it matches."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | None = None
    target: RuleTarget = "all"
    active: bool = True
    rule: Rule = Field(
        ...,
        validation_alias=AliasChoices("rule", "ruleParsed"),
    )
    actions: list[Action] = Field(
        ...,
        validation_alias=AliasChoices("actions", "actionsParsed"),
    )

    @field_validator("actions")
    @classmethod
    def _require_action(cls, value: list[Action]) -> list[Action]:
        if not value:
            raise ValueError("At least one action is required.")
        return value

    @property
    def has_conditions(self) -> bool:
        """True when the tree configures at least one condition."""
        if isinstance(self.rule, ConditionRule):
            return True
        return bool(self.rule.conditions)

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def empty(cls, action_type: str) -> RuleSet:
        return cls(rule=empty_rule(), actions=[action_of(action_type)])


def is_rule_target_applicable(target: str, parent_hash: str | None) -> bool:
    """Whether a rule set targeting ``target`` applies to a cast."""
    if target == "root":
        return parent_hash is None
    if target == "reply":
        return parent_hash is not None
    return True


class ModeratedChannelConfig(BaseModel):
    """Immutable snapshot of a channel's moderation configuration.

    Accepts both camelCase (dashboard) and snake_case field names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(..., min_length=1)
    user_id: str = ""
    active: bool = True
    ban_threshold: int | None = None
    slow_mode_hours: int = Field(default=0, ge=0)
    exclude_usernames: list[SelectOption] = Field(default_factory=list)
    exclude_cohosts: bool = True
    inclusion_rule_set: RuleSet = Field(default_factory=lambda: RuleSet.empty("like"))
    exclusion_rule_set: RuleSet = Field(default_factory=lambda: RuleSet.empty("hideQuietly"))

    @field_validator("id")
    @classmethod
    def _lowercase_id(cls, value: str) -> str:
        return value.lower()

    @model_validator(mode="after")
    def _require_inclusion_when_excluding(self) -> ModeratedChannelConfig:
        if not self.inclusion_rule_set.has_conditions and self.exclusion_rule_set.has_conditions:
            raise ValueError(INCLUSION_REQUIRED_MESSAGE)
        return self

    def is_bypassed(self, fid: int) -> bool:
        return any(option.value == fid for option in self.exclude_usernames)


__all__ = [
    "INCLUSION_REQUIRED_MESSAGE",
    "ModeratedChannelConfig",
    "RuleSet",
    "RuleTarget",
    "SelectOption",
    "is_rule_target_applicable",
]
