"""API endpoint modules for version 1."""

from .channels import router as channels_router
from .frames import router as frames_router
from .rules import router as rules_router
from .webhooks import router as webhooks_router

__all__ = [
    "channels_router",
    "frames_router",
    "rules_router",
    "webhooks_router",
]
