from credora.domain.errors import ConfigurationError
from credora.domain.models import (
    Cap,
    Card,
    CumulativeThreshold,
    MerchantAllowList,
    MinSpend,
    Purchase,
    RewardRule,
    TimeWindow,
)


def _condition_holds(condition, rule: RewardRule, purchase: Purchase) -> bool:
    if isinstance(condition, MinSpend):
        return purchase.amount >= condition.min_amount
    if isinstance(condition, MerchantAllowList):
        return condition.allows(purchase.merchant)
    if isinstance(condition, TimeWindow):
        return condition.allows(purchase.timestamp)
    if isinstance(condition, (CumulativeThreshold, Cap)):
        # Window-dependent; applied by the evaluator against tracker state.
        return True
    raise ConfigurationError(
        f"Unsupported condition kind: {type(condition).__name__}", card_id=rule.card_id, rule_id=rule.rule_id
    )


def rule_applies(rule: RewardRule, purchase: Purchase) -> bool:
    if not rule.is_wildcard and rule.category != purchase.category:
        return False
    return all(_condition_holds(condition, rule, purchase) for condition in rule.conditions)


def match_rules(card: Card, purchase: Purchase) -> list[RewardRule]:
    if not card.active:
        return []

    matched = [rule for rule in card.rules if rule_applies(rule, purchase)]
    matched.sort(key=lambda rule: (rule.is_wildcard, -rule.rate, rule.rule_id))
    return matched
