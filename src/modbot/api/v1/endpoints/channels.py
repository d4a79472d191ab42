"""Channel configuration, simulation and activity endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from modbot.api.v1.dependencies import ModerationServiceDep, ProvidersDep, RepositoryDep
from modbot.core.errors import (
    ActionError,
    ChannelNotFoundError,
    ModerationLogNotFoundError,
    RuleConfigurationError,
    TransientCheckError,
)
from modbot.providers import ProviderError
from modbot.schemas import (
    ApproveRequest,
    ModeratedChannelConfig,
    ModerationLogOut,
    SimulationRequest,
    SimulationResponse,
)

router = APIRouter(prefix="/channels", tags=["channels"])


def _not_found(channel_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Channel {channel_id} is not moderated",
    )


@router.get("/{channel_id}", response_model=ModeratedChannelConfig)
async def get_channel(channel_id: str, repository: RepositoryDep) -> ModeratedChannelConfig:
    """Return the stored moderation configuration."""
    config = repository.find_channel(channel_id)
    if config is None:
        raise _not_found(channel_id)
    return config


@router.put("/{channel_id}", response_model=ModeratedChannelConfig)
async def put_channel(
    channel_id: str,
    config: ModeratedChannelConfig,
    moderation: ModerationServiceDep,
) -> ModeratedChannelConfig:
    """Create or replace a channel's configuration.

    Rule trees are checked against the registry before anything is stored.
    """
    if config.id != channel_id.lower():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Channel id does not match the request path",
        )
    try:
        return moderation.save_channel_config(config)
    except RuleConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


@router.post("/{channel_id}/simulate", response_model=SimulationResponse)
async def simulate(
    channel_id: str,
    request: SimulationRequest,
    moderation: ModerationServiceDep,
    providers: ProvidersDep,
    repository: RepositoryDep,
) -> SimulationResponse:
    """Show what the rules would do for a user or cast, without acting.

    Uses ``request.config`` when given so unsaved edits can be previewed.
    """
    channel = request.config or repository.find_channel(channel_id)
    if channel is None:
        raise _not_found(channel_id)

    try:
        if request.config is not None:
            moderation.registry.validate_tree(channel.inclusion_rule_set.rule, rule_set="inclusion")
            moderation.registry.validate_tree(channel.exclusion_rule_set.rule, rule_set="exclusion")

        user = await providers.neynar.get_user(request.fid)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"User {request.fid} not found",
            )

        if request.cast is None:
            logs = await moderation.validate_user(channel, user, simulation=True)
        else:
            cast = request.cast.model_copy(update={"author": user})
            logs = await moderation.validate_cast(channel, cast, simulation=True)
    except RuleConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except (TransientCheckError, ProviderError) as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc

    return SimulationResponse(logs=logs)


@router.get("/{channel_id}/activity", response_model=list[ModerationLogOut])
async def list_activity(
    channel_id: str,
    repository: RepositoryDep,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    action: str | None = Query(None),
) -> list[ModerationLogOut]:
    """List moderation decisions for the channel, newest first."""
    if repository.get_channel_row(channel_id) is None:
        raise _not_found(channel_id)
    logs = repository.list_logs(channel_id.lower(), limit=limit, offset=offset, action=action)
    return [ModerationLogOut.model_validate(log) for log in logs]


@router.post(
    "/{channel_id}/activity/{log_id}/approve",
    response_model=ModerationLogOut,
)
async def approve(
    channel_id: str,
    log_id: str,
    request: ApproveRequest,
    moderation: ModerationServiceDep,
) -> ModerationLogOut:
    """Manually approve a user or cast the rules quietly hid."""
    try:
        return await moderation.approve_log(channel_id.lower(), log_id, request.actor)
    except (ChannelNotFoundError, ModerationLogNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ActionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
