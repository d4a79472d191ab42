"""Frame endpoints for joining a moderated channel."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from modbot.api.v1.dependencies import IntakeDep
from modbot.core.errors import ChannelNotFoundError
from modbot.schemas import JoinRequest, JoinResponse

router = APIRouter(prefix="/frames", tags=["frames"])


@router.post("/{channel_id}/join", response_model=JoinResponse)
async def join_channel(channel_id: str, request: JoinRequest, intake: IntakeDep) -> JoinResponse:
    """Run the channel's rules for a user asking to join."""
    try:
        return await intake.handle_join_request(channel_id, request.fid)
    except ChannelNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="This channel is not configured to use ModBot.",
        ) from exc
