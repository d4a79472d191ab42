# src/modbot/schemas/__init__.py
"""
Pydantic schemas for rule trees, channel configuration and API payloads.

The rule and action schemas double as the stored configuration format.
"""

from .actions import ACTION_TYPES, Action, action_adapter, action_of
from .channel import ModeratedChannelConfig, RuleSet, SelectOption, is_rule_target_applicable
from .farcaster import Cast, User
from .moderation import (
    ApproveRequest,
    JoinRequest,
    JoinResponse,
    ModerationLogOut,
    RuleDefinitionOut,
    SimulationRequest,
    SimulationResponse,
)
from .rules import ConditionRule, LogicalRule, Rule, parse_rule, rule_to_json
from .webhook import WebhookPayload, WebhookResponse

__all__ = [
    "ACTION_TYPES", "Action", "action_adapter", "action_of",
    "ModeratedChannelConfig", "RuleSet", "SelectOption", "is_rule_target_applicable",
    "Cast", "User",
    "ApproveRequest", "JoinRequest", "JoinResponse", "ModerationLogOut",
    "RuleDefinitionOut", "SimulationRequest", "SimulationResponse",
    "ConditionRule", "LogicalRule", "Rule", "parse_rule", "rule_to_json",
    "WebhookPayload", "WebhookResponse",
]
