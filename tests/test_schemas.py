import pytest
from pydantic import ValidationError

from modbot.core.errors import RuleConfigurationError
from modbot.schemas import (
    ConditionRule,
    LogicalRule,
    ModeratedChannelConfig,
    action_adapter,
    is_rule_target_applicable,
    parse_rule,
    rule_to_json,
)
from modbot.schemas.channel import INCLUSION_REQUIRED_MESSAGE
from tests.conftest import condition, logical, make_channel


def test_parse_rule_builds_nested_tree():
    rule = parse_rule(
        logical("OR", condition("containsText", searchText="gm"), logical("AND", condition("alwaysInclude")))
    )

    assert isinstance(rule, LogicalRule)
    assert rule.operation == "OR"
    assert isinstance(rule.conditions[0], ConditionRule)
    assert rule.conditions[0].args == {"searchText": "gm"}
    assert isinstance(rule.conditions[1], LogicalRule)


def test_parse_rule_accepts_json_text():
    rule = parse_rule('{"type": "CONDITION", "name": "alwaysInclude", "args": {}}')

    assert rule.name == "alwaysInclude"


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "GROUP", "name": "x"},
        {"type": "LOGICAL", "name": "and", "operation": "XOR", "conditions": []},
        {"type": "CONDITION", "name": ""},
        "not json",
    ],
)
def test_parse_rule_rejects_malformed_trees(payload):
    with pytest.raises(RuleConfigurationError, match="Malformed rule tree"):
        parse_rule(payload)


def test_rule_to_json_is_compact():
    assert rule_to_json(None) == "{}"
    assert rule_to_json(parse_rule(condition("alwaysInclude"))) == (
        '{"type":"CONDITION","name":"alwaysInclude","args":{}}'
    )


def test_actions_are_discriminated_by_type():
    cooldown = action_adapter.validate_python({"type": "cooldown", "args": {"duration": "2"}})

    assert cooldown.args.duration == 2.0
    with pytest.raises(ValidationError):
        action_adapter.validate_python({"type": "explode"})
    with pytest.raises(ValidationError):
        action_adapter.validate_python({"type": "grantRole", "args": {}})


def test_channel_accepts_snake_and_camel_case():
    camel = make_channel("Memes", slowModeHours=4)
    snake = ModeratedChannelConfig(id="memes", slow_mode_hours=4)

    assert camel.id == "memes"
    assert camel.slow_mode_hours == snake.slow_mode_hours == 4


def test_channel_defaults_to_empty_rule_sets():
    config = ModeratedChannelConfig(id="base")

    assert config.inclusion_rule_set.has_conditions is False
    assert [a.type for a in config.inclusion_rule_set.actions] == ["like"]
    assert [a.type for a in config.exclusion_rule_set.actions] == ["hideQuietly"]
    assert config.exclude_cohosts is True


def test_exclusion_requires_inclusion():
    with pytest.raises(ValidationError) as excinfo:
        make_channel(exclusion=logical("OR", condition("containsText", searchText="spam")))

    assert INCLUSION_REQUIRED_MESSAGE in excinfo.value.errors()[0]["msg"]


def test_rule_sets_need_an_action():
    with pytest.raises(ValidationError, match="At least one action is required"):
        ModeratedChannelConfig.model_validate(
            {"id": "base", "inclusionRuleSet": {"rule": logical("OR"), "actions": []}}
        )


def test_rule_sets_accept_parsed_aliases():
    config = ModeratedChannelConfig.model_validate(
        {
            "id": "base",
            "inclusionRuleSet": {
                "ruleParsed": logical("OR", condition("alwaysInclude")),
                "actionsParsed": [{"type": "like"}],
            },
        }
    )

    assert config.inclusion_rule_set.has_conditions


def test_bypass_list_lookup():
    config = make_channel(excludeUsernames=[{"value": 5, "label": "bob"}])

    assert config.is_bypassed(5)
    assert not config.is_bypassed(6)


@pytest.mark.parametrize(
    ("target", "parent_hash", "expected"),
    [
        ("all", None, True),
        ("all", "0xparent", True),
        ("root", None, True),
        ("root", "0xparent", False),
        ("reply", None, False),
        ("reply", "0xparent", True),
    ],
)
def test_rule_target_applicability(target, parent_hash, expected):
    assert is_rule_target_applicable(target, parent_hash) is expected
