from pydantic import BaseModel

from credora.domain.models import GoalProgress, Purchase, Recommendation, ThresholdState


class OptimizeResponse(BaseModel):
    purchase: Purchase
    recommendation: Recommendation | None
    reason: str | None = None


class CommitResponse(BaseModel):
    state: ThresholdState


class GoalsProgressResponse(BaseModel):
    progress: GoalProgress
    history: list[ThresholdState]
