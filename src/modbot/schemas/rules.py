# src/modbot/schemas/rules.py
"""Rule tree schemas.

A rule tree is a strict recursive sum type: a ``CONDITION`` leaf naming a
registered check, or a ``LOGICAL`` node combining child rules with ``AND`` or
``OR``. The JSON field names and discriminant values are the stored
configuration format and must not change.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from modbot.core.errors import RuleConfigurationError


class ConditionRule(BaseModel):
    """Leaf node: invoke the named check with ``args``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["CONDITION"] = "CONDITION"
    name: str = Field(..., min_length=1)
    args: dict[str, Any] = Field(default_factory=dict)


class LogicalRule(BaseModel):
    """Inner node combining ``conditions`` with ``operation``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["LOGICAL"] = "LOGICAL"
    name: str = "and"
    args: dict[str, Any] = Field(default_factory=dict)
    operation: Literal["AND", "OR"]
    conditions: list[Rule] = Field(default_factory=list)


Rule = Annotated[ConditionRule | LogicalRule, Field(discriminator="type")]

LogicalRule.model_rebuild()

rule_adapter: TypeAdapter[ConditionRule | LogicalRule] = TypeAdapter(Rule)


def parse_rule(data: str | bytes | dict[str, Any]) -> ConditionRule | LogicalRule:
    """Deserialize a stored rule tree.

    Args:
        data: JSON text or an already-decoded mapping

    Returns:
        The validated rule tree

    Raises:
        RuleConfigurationError: If the payload is not a well-formed rule tree
    """
    try:
        if isinstance(data, str | bytes):
            return rule_adapter.validate_json(data)
        return rule_adapter.validate_python(data)
    except ValidationError as exc:
        raise RuleConfigurationError(f"Malformed rule tree: {exc}") from exc


def rule_to_dict(rule: ConditionRule | LogicalRule) -> dict[str, Any]:
    return rule.model_dump(mode="json")


def rule_to_json(rule: ConditionRule | LogicalRule | None) -> str:
    """Serialize a rule for the audit log; ``"{}"`` when there is none."""
    if rule is None:
        return "{}"
    return json.dumps(rule_to_dict(rule), separators=(",", ":"))


def iter_conditions(rule: ConditionRule | LogicalRule) -> Iterator[ConditionRule]:
    """Yield every CONDITION leaf in depth-first order."""
    if isinstance(rule, ConditionRule):
        yield rule
        return
    for child in rule.conditions:
        yield from iter_conditions(child)


def empty_rule() -> LogicalRule:
    return LogicalRule(name="or", operation="OR", conditions=[])
