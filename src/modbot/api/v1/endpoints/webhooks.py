"""Webhook intake endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from modbot.api.v1.dependencies import IntakeDep
from modbot.core.errors import InvalidEventError, TransientCheckError
from modbot.providers import ProviderTimeoutError, ProviderUnavailableError
from modbot.schemas import WebhookPayload, WebhookResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

# The webhook source redelivers on 503, so only retryable failures map there.
RETRYABLE_ERRORS = (TransientCheckError, ProviderTimeoutError, ProviderUnavailableError)


@router.post("/neynar", response_model=WebhookResponse)
async def cast_created(payload: WebhookPayload, intake: IntakeDep) -> WebhookResponse:
    """Moderate a newly created channel cast."""
    try:
        message = await intake.handle_cast_created(payload)
    except InvalidEventError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RETRYABLE_ERRORS as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation temporarily unavailable, retry later",
        ) from exc
    except Exception as exc:
        logger.exception("Webhook processing failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal error",
        ) from exc
    return WebhookResponse(message=message)
