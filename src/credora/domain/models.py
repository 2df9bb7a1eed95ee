from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class RewardCategory(str, Enum):
    FUEL = "fuel"
    DINING = "dining"
    TRAVEL = "travel"
    ECOMMERCE = "ecommerce"
    GROCERY = "grocery"
    ENTERTAINMENT = "entertainment"
    UTILITIES = "utilities"
    OTHER = "other"
    UNCATEGORIZED = "uncategorized"
    # Wildcard marker, only valid on rules.
    ALL = "all"


class RewardType(str, Enum):
    CASHBACK = "cashback"
    POINTS = "points"
    MILES_OR_LOUNGE_ACCESS = "miles_or_lounge_access"
    DISCOUNT = "discount"


REWARD_UNITS = {
    RewardType.CASHBACK: "currency",
    RewardType.POINTS: "points",
    RewardType.MILES_OR_LOUNGE_ACCESS: "miles",
    RewardType.DISCOUNT: "currency_off",
}


def as_aware(value: datetime) -> datetime:
    """Naive timestamps are read as UTC; aware ones keep their own offset."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def as_utc(value: datetime) -> datetime:
    return as_aware(value).astimezone(timezone.utc)


class MinSpend(BaseModel):
    kind: Literal["min_spend"] = "min_spend"
    min_amount: float = Field(gt=0)

    def describe(self) -> str:
        return f"minimum spend {self.min_amount:.2f} per transaction"


class MerchantAllowList(BaseModel):
    kind: Literal["merchant_allow_list"] = "merchant_allow_list"
    merchants: list[str] = Field(min_length=1)

    def allows(self, merchant: str | None) -> bool:
        if not merchant:
            return False
        allowed = {item.strip().lower() for item in self.merchants}
        return merchant.strip().lower() in allowed

    def describe(self) -> str:
        return f"only at {', '.join(self.merchants)}"


class TimeWindow(BaseModel):
    """Day-of-week and time-of-day restriction. Days use 0=Monday."""

    kind: Literal["time_window"] = "time_window"
    days_of_week: list[int] | None = None
    start_time: time | None = None
    end_time: time | None = None

    @field_validator("days_of_week")
    @classmethod
    def _check_days(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and any(day < 0 or day > 6 for day in value):
            raise ValueError("days_of_week entries must be between 0 (Monday) and 6 (Sunday)")
        return value

    @model_validator(mode="after")
    def _check_times(self) -> "TimeWindow":
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be set together")
        return self

    def allows(self, moment: datetime) -> bool:
        # Checked against the purchase's own wall clock, not UTC.
        if self.days_of_week is not None and moment.weekday() not in self.days_of_week:
            return False
        if self.start_time is None or self.end_time is None:
            return True

        current = moment.time().replace(tzinfo=None)
        if self.start_time <= self.end_time:
            return self.start_time <= current < self.end_time
        # Overnight range, e.g. 22:00 to 02:00.
        return current >= self.start_time or current < self.end_time

    def describe(self) -> str:
        parts = []
        if self.days_of_week is not None:
            names = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
            parts.append("on " + "/".join(names[day] for day in sorted(self.days_of_week)))
        if self.start_time is not None and self.end_time is not None:
            parts.append(f"between {self.start_time:%H:%M} and {self.end_time:%H:%M}")
        return " ".join(parts) or "any time"


class CumulativeThreshold(BaseModel):
    kind: Literal["cumulative_threshold"] = "cumulative_threshold"
    min_spend: float = Field(gt=0)
    unlocked_rate: float = Field(ge=0)

    def describe(self) -> str:
        return f"rate rises to {self.unlocked_rate:.2%} once window spend reaches {self.min_spend:.2f}"


class Cap(BaseModel):
    kind: Literal["cap"] = "cap"
    max_reward: float = Field(ge=0)

    def describe(self) -> str:
        return f"capped at {self.max_reward:.2f} per window"


Condition = Annotated[
    Union[MinSpend, MerchantAllowList, TimeWindow, CumulativeThreshold, Cap],
    Field(discriminator="kind"),
]


class CalendarMonth(BaseModel):
    kind: Literal["calendar_month"] = "calendar_month"

    def describe(self) -> str:
        return "calendar month"


class CalendarQuarter(BaseModel):
    kind: Literal["calendar_quarter"] = "calendar_quarter"

    def describe(self) -> str:
        return "calendar quarter"


class CalendarYear(BaseModel):
    kind: Literal["calendar_year"] = "calendar_year"

    def describe(self) -> str:
        return "calendar year"


class RollingDays(BaseModel):
    """Consecutive N-day blocks starting at ``anchor``."""

    kind: Literal["rolling_days"] = "rolling_days"
    days: int = Field(ge=1)
    anchor: date

    def describe(self) -> str:
        return f"{self.days}-day cycle from {self.anchor.isoformat()}"


WindowDefinition = Annotated[
    Union[CalendarMonth, CalendarQuarter, CalendarYear, RollingDays],
    Field(discriminator="kind"),
]


class RewardRule(BaseModel):
    rule_id: str
    card_id: str
    reward_type: RewardType = RewardType.CASHBACK
    category: RewardCategory = RewardCategory.ALL
    rate: float = Field(ge=0)
    conditions: list[Condition] = Field(default_factory=list)
    window: WindowDefinition = Field(default_factory=CalendarMonth)
    description: str | None = None

    @model_validator(mode="after")
    def _check_single_gates(self) -> "RewardRule":
        kinds = [condition.kind for condition in self.conditions]
        for kind in ("cap", "cumulative_threshold"):
            if kinds.count(kind) > 1:
                raise ValueError(f"rule {self.rule_id} declares more than one {kind} condition")
        return self

    @property
    def cap(self) -> Cap | None:
        return next((c for c in self.conditions if isinstance(c, Cap)), None)

    @property
    def cumulative_threshold(self) -> CumulativeThreshold | None:
        return next((c for c in self.conditions if isinstance(c, CumulativeThreshold)), None)

    @property
    def is_wildcard(self) -> bool:
        return self.category == RewardCategory.ALL

    @property
    def unit(self) -> str:
        return REWARD_UNITS[self.reward_type]


class Card(BaseModel):
    card_id: str
    user_id: str
    card_name: str = ""
    bank: str = ""
    network: str = ""
    active: bool = True
    annual_fee: float | None = None
    base_rate: float = Field(default=0, ge=0)
    rules: list[RewardRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_rule_owner(self) -> "Card":
        for rule in self.rules:
            if rule.card_id != self.card_id:
                raise ValueError(f"rule {rule.rule_id} belongs to {rule.card_id}, not {self.card_id}")
        return self

    def rule(self, rule_id: str) -> RewardRule | None:
        return next((rule for rule in self.rules if rule.rule_id == rule_id), None)


class Purchase(BaseModel):
    amount: float = Field(gt=0)
    category: RewardCategory = RewardCategory.UNCATEGORIZED
    merchant: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("category")
    @classmethod
    def _reject_wildcard(cls, value: RewardCategory) -> RewardCategory:
        if value == RewardCategory.ALL:
            raise ValueError("a purchase must resolve to a concrete category")
        return value

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return as_aware(value)


class Transaction(Purchase):
    card_id: str
    transaction_id: str | None = None


class ThresholdState(BaseModel):
    card_id: str
    rule_id: str
    window_key: str
    window_start: datetime
    window_end: datetime
    spend_to_date: float = 0
    reward_earned_to_date: float = 0
    version: int = 0
    finalized: bool = False


class RewardQuote(BaseModel):
    amount: float
    unit: str
    reward_type: RewardType
    rate_applied: float
    base_amount: float
    capped: bool = False
    unlocked_bonus: bool = False


class CardOption(BaseModel):
    card_id: str
    card_name: str
    rule_id: str | None
    quote: RewardQuote
    effective_value: float
    annual_fee: float | None = None


class Recommendation(BaseModel):
    card_id: str
    card_name: str
    rule_id: str | None
    quote: RewardQuote
    effective_value: float
    rationale: str
    alternatives: list[CardOption]


class GoalProgress(BaseModel):
    state: ThresholdState
    cap: float | None = None
    remaining_to_cap: float | None = None
    unlock_threshold: float | None = None
    remaining_to_unlock: float | None = None
    unlocked: bool | None = None
