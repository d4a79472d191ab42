"""Rule catalogue endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from modbot.api.v1.dependencies import RegistryDep
from modbot.schemas import RuleDefinitionOut

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("", response_model=list[RuleDefinitionOut])
async def list_rules(
    registry: RegistryDep,
    fid: int | None = Query(None, description="Fid of the user configuring the channel"),
    channel_id: str | None = Query(None, description="Channel being configured"),
) -> list[RuleDefinitionOut]:
    """List the checks available to ``fid`` for ``channel_id``.

    Gated checks are hidden unless the fid or channel is on their allow-list.
    """
    return [
        RuleDefinitionOut.model_validate(definition.describe())
        for definition in registry.definitions_for(fid, channel_id)
    ]
