from fastapi import APIRouter, Depends

from ats.core.auth import Actor
from ats.core.security import get_current_actor
from ats.schemas.me import MeOut

router = APIRouter()


@router.get("", response_model=MeOut)
async def get_me(actor: Actor = Depends(get_current_actor)) -> MeOut:
    return MeOut(
        id=actor.id,
        organization_id=actor.organization_id,
        role=actor.role,
        capabilities=sorted(capability.value for capability in actor.capabilities),
    )
