import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from credora.api.routes.goals import router as goals_router
from credora.api.routes.health import router as health_router
from credora.api.routes.optimize import router as optimize_router
from credora.api.routes.transactions import router as transactions_router
from credora.config import Settings, settings
from credora.domain.errors import (
    ConcurrentUpdateError,
    ConfigurationError,
    InvalidWindowError,
    NoEligibleCardError,
    QuoteCancelledError,
    RewardEngineError,
    RuleNotFoundError,
    UserNotFoundError,
)
from credora.logging_config import configure_logging
from credora.service.orchestrator import RewardsOrchestrator

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NoEligibleCardError: 200,
    InvalidWindowError: 422,
    RuleNotFoundError: 404,
    UserNotFoundError: 404,
    ConcurrentUpdateError: 409,
    QuoteCancelledError: 504,
    ConfigurationError: 500,
}


def _engine_error_payload(exc: RewardEngineError) -> dict:
    return {
        "error": type(exc).__name__,
        "detail": exc.message,
        "card_id": exc.card_id,
        "rule_id": exc.rule_id,
    }


async def handle_engine_error(request: Request, exc: RewardEngineError) -> JSONResponse:
    status_code = next((code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 400)
    if status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    else:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=_engine_error_payload(exc))


async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    response = await call_next(request)
    logger.info("%s %s -> %d", request.method, request.url.path, response.status_code)
    return response


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def create_app(orchestrator: RewardsOrchestrator | None = None, app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings
    configure_logging(app_settings.log_level)

    app = FastAPI(title="Credora Rewards API", version="0.1.0")
    app.state.orchestrator = orchestrator or RewardsOrchestrator.from_settings(app_settings)

    app.add_exception_handler(RewardEngineError, handle_engine_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.middleware("http")(log_requests)

    app.include_router(health_router)
    app.include_router(optimize_router)
    app.include_router(transactions_router)
    app.include_router(goals_router)
    return app


def run() -> None:
    uvicorn.run(
        "credora.api.app:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
    )
