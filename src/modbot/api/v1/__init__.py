"""Version 1 API endpoints."""

from .endpoints import channels_router, frames_router, rules_router, webhooks_router

__all__ = [
    "channels_router",
    "frames_router",
    "rules_router",
    "webhooks_router",
]
