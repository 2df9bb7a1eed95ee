from datetime import datetime

from fastapi import APIRouter, Depends

from credora.api.dependencies import get_orchestrator
from credora.schemas.responses import GoalsProgressResponse
from credora.service.orchestrator import RewardsOrchestrator

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("/{card_id}/{rule_id}", response_model=GoalsProgressResponse)
def goals_progress(
    card_id: str,
    rule_id: str,
    as_of: datetime | None = None,
    orchestrator: RewardsOrchestrator = Depends(get_orchestrator),
) -> GoalsProgressResponse:
    return orchestrator.goals_progress(card_id, rule_id, as_of)
