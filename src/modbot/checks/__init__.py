"""Check registry and the built-in checks."""

from itertools import chain

from . import cast_content, icebreaker, onchain, regular, reputation, social, user_profile, webhook
from .base import (
    ArgSpec,
    CheckContext,
    CheckDefinition,
    CheckFunction,
    CheckRegistry,
    CheckResult,
    CheckSet,
)


def build_registry() -> CheckRegistry:
    """Registry holding every built-in check."""
    return CheckRegistry(
        chain(
            regular.checks,
            user_profile.checks,
            social.checks,
            cast_content.checks,
            onchain.checks,
            reputation.checks,
            icebreaker.checks,
            webhook.checks,
        )
    )


default_registry = build_registry()

__all__ = [
    "ArgSpec",
    "CheckContext",
    "CheckDefinition",
    "CheckFunction",
    "CheckRegistry",
    "CheckResult",
    "CheckSet",
    "build_registry",
    "default_registry",
]
