from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from credora.domain.models import RewardCategory


def _concrete_category(value: RewardCategory) -> RewardCategory:
    if value == RewardCategory.ALL:
        raise ValueError("category must be a concrete spend category")
    return value


SpendCategory = Annotated[RewardCategory, AfterValidator(_concrete_category)]


class OptimizeRequest(BaseModel):
    user_id: str
    amount: float = Field(gt=0)
    category: SpendCategory | None = None
    merchant: str | None = None
    timestamp: datetime | None = None


class CommitRequest(BaseModel):
    card_id: str
    rule_id: str
    amount: float = Field(gt=0)
    timestamp: datetime
    merchant: str | None = None
    category: SpendCategory | None = None
    transaction_id: str | None = None
