"""Inbound webhook payloads."""

from typing import Any

from pydantic import BaseModel, Field


class WebhookPayload(BaseModel):
    """Envelope posted by the cast webhook source."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class WebhookResponse(BaseModel):
    message: str
