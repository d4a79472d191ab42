"""Business logic services for the ModBot application."""

from .actions import ActionDispatcher
from .cache import CacheService
from .evaluator import EvaluationResult, OrStrategy, RuleEvaluator
from .intake import WebhookIntake
from .moderation import ModerationService

__all__ = [
    "ActionDispatcher",
    "CacheService",
    "EvaluationResult",
    "OrStrategy",
    "RuleEvaluator",
    "WebhookIntake",
    "ModerationService",
]
