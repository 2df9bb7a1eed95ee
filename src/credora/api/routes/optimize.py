from fastapi import APIRouter, Depends

from credora.api.dependencies import get_orchestrator
from credora.schemas.requests import OptimizeRequest
from credora.schemas.responses import OptimizeResponse
from credora.service.orchestrator import RewardsOrchestrator

router = APIRouter(tags=["optimize"])


@router.post("/optimize", response_model=OptimizeResponse)
def optimize(
    request: OptimizeRequest,
    orchestrator: RewardsOrchestrator = Depends(get_orchestrator),
) -> OptimizeResponse:
    return orchestrator.optimize(request)
