import logging
from collections.abc import Mapping

from credora.domain.errors import ConfigurationError
from credora.domain.models import (
    REWARD_UNITS,
    Card,
    Purchase,
    RewardQuote,
    RewardRule,
    RewardType,
    ThresholdState,
)

logger = logging.getLogger(__name__)


class ExchangeRates:
    """Currency value of one unit of each reward type."""

    def __init__(self, rates: Mapping[RewardType | str, float]):
        self._rates = {RewardType(key): float(value) for key, value in rates.items()}

    def value_of(self, reward_type: RewardType) -> float:
        try:
            return self._rates[reward_type]
        except KeyError:
            raise ConfigurationError(
                f"No exchange rate configured for reward type '{reward_type.value}'"
            ) from None

    def as_dict(self) -> dict[str, float]:
        return {key.value: value for key, value in self._rates.items()}


def quote(rule: RewardRule, purchase: Purchase, state: ThresholdState) -> RewardQuote:
    rate = rule.rate
    unlocked = False

    threshold = rule.cumulative_threshold
    if threshold is not None:
        spend_including_purchase = state.spend_to_date + purchase.amount
        if spend_including_purchase >= threshold.min_spend:
            rate = threshold.unlocked_rate
            unlocked = True

    base_amount = purchase.amount * rate
    amount = base_amount
    capped = False

    cap = rule.cap
    if cap is not None:
        remaining = max(0.0, cap.max_reward - state.reward_earned_to_date)
        if base_amount > remaining:
            amount = remaining
            capped = True

    logger.debug(
        "Quoted rule %s on card %s: amount=%.4f rate=%.4f capped=%s unlocked=%s",
        rule.rule_id,
        rule.card_id,
        amount,
        rate,
        capped,
        unlocked,
    )
    return RewardQuote(
        amount=amount,
        unit=rule.unit,
        reward_type=rule.reward_type,
        rate_applied=rate,
        base_amount=base_amount,
        capped=capped,
        unlocked_bonus=unlocked,
    )


def baseline_quote(card: Card, purchase: Purchase) -> RewardQuote:
    amount = purchase.amount * card.base_rate
    return RewardQuote(
        amount=amount,
        unit=REWARD_UNITS[RewardType.CASHBACK],
        reward_type=RewardType.CASHBACK,
        rate_applied=card.base_rate,
        base_amount=amount,
    )


def effective_value(reward: RewardQuote, rates: ExchangeRates) -> float:
    return round(reward.amount * rates.value_of(reward.reward_type), 6)


def describe_rule(rule: RewardRule | None, reward: RewardQuote) -> str:
    if rule is None:
        return f"no reward rule matched; card baseline rate {reward.rate_applied:.2%}"

    scope = "any category" if rule.is_wildcard else rule.category.value
    parts = [f"rule '{rule.rule_id}' on {scope}", f"rate {reward.rate_applied:.2%}"]
    if reward.unlocked_bonus:
        parts.append("spend threshold unlocked")
    for condition in rule.conditions:
        parts.append(condition.describe())
    if rule.cap is not None or rule.cumulative_threshold is not None:
        parts.append(f"window: {rule.window.describe()}")
    if reward.capped:
        parts.append(f"clamped from {reward.base_amount:.2f} by cap")
    return "; ".join(parts)
