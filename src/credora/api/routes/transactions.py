from fastapi import APIRouter, Depends

from credora.api.dependencies import get_orchestrator
from credora.schemas.requests import CommitRequest
from credora.schemas.responses import CommitResponse
from credora.service.orchestrator import RewardsOrchestrator

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("/commit", response_model=CommitResponse)
def commit_transaction(
    request: CommitRequest,
    orchestrator: RewardsOrchestrator = Depends(get_orchestrator),
) -> CommitResponse:
    return CommitResponse(state=orchestrator.commit_transaction(request))
