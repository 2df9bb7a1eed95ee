from fastapi import Request

from credora.service.orchestrator import RewardsOrchestrator


def get_orchestrator(request: Request) -> RewardsOrchestrator:
    return request.app.state.orchestrator
