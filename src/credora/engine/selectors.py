import logging

from credora.domain.errors import NoEligibleCardError, RewardEngineError
from credora.domain.models import Card, CardOption, Purchase, Recommendation
from credora.engine.deadline import Deadline
from credora.engine.evaluator import ExchangeRates, baseline_quote, describe_rule, effective_value, quote
from credora.engine.matcher import match_rules
from credora.engine.tracker import ThresholdTracker

logger = logging.getLogger(__name__)


def _ranking_key(option: CardOption) -> tuple:
    fee = option.annual_fee if option.annual_fee is not None else 0.0
    return (-option.effective_value, fee, option.card_id)


class Optimizer:
    """Ranks a user's cards for a purchase. Read-only: it never commits tracker state."""

    def __init__(self, tracker: ThresholdTracker, exchange_rates: ExchangeRates, currency: str = "INR"):
        self.tracker = tracker
        self.exchange_rates = exchange_rates
        self.currency = currency

    def evaluate_card(self, card: Card, purchase: Purchase) -> CardOption:
        best: CardOption | None = None
        rule_id = None
        try:
            for rule in match_rules(card, purchase):
                rule_id = rule.rule_id
                state = self.tracker.get_state(card.card_id, rule.rule_id, purchase.timestamp, rule=rule)
                reward = quote(rule, purchase, state)
                value = effective_value(reward, self.exchange_rates)
                if best is None or value > best.effective_value:
                    best = CardOption(
                        card_id=card.card_id,
                        card_name=card.card_name,
                        rule_id=rule.rule_id,
                        quote=reward,
                        effective_value=value,
                        annual_fee=card.annual_fee,
                    )

            if best is None:
                rule_id = None
                reward = baseline_quote(card, purchase)
                best = CardOption(
                    card_id=card.card_id,
                    card_name=card.card_name,
                    rule_id=None,
                    quote=reward,
                    effective_value=effective_value(reward, self.exchange_rates),
                    annual_fee=card.annual_fee,
                )
        except RewardEngineError as exc:
            raise exc.annotate(card_id=card.card_id, rule_id=rule_id)
        return best

    def rank_cards(self, purchase: Purchase, cards: list[Card], deadline: Deadline | None = None) -> list[CardOption]:
        options = []
        for card in cards:
            if deadline is not None:
                deadline.check()
            if not card.active:
                continue
            options.append(self.evaluate_card(card, purchase))
        options.sort(key=_ranking_key)
        return options

    def recommend(self, purchase: Purchase, cards: list[Card], deadline: Deadline | None = None) -> Recommendation:
        ranked = self.rank_cards(purchase, cards, deadline)
        if deadline is not None:
            deadline.check()

        if not ranked or ranked[0].effective_value <= 0:
            logger.warning(
                "No eligible card for %.2f %s purchase across %d card(s)",
                purchase.amount,
                purchase.category.value,
                len(cards),
            )
            raise NoEligibleCardError(f"No card earns a reward on this {purchase.category.value} purchase")

        best = ranked[0]
        card = next(card for card in cards if card.card_id == best.card_id)
        rule = card.rule(best.rule_id) if best.rule_id else None
        rationale = (
            f"{best.card_name or best.card_id} earns {best.quote.amount:.2f} {best.quote.unit} "
            f"(worth {best.effective_value:.2f} {self.currency}): {describe_rule(rule, best.quote)}"
        )
        if len(ranked) > 1:
            runner_up = ranked[1]
            rationale += (
                f". Next best: {runner_up.card_name or runner_up.card_id} "
                f"at {runner_up.effective_value:.2f} {self.currency}"
            )

        logger.debug("Recommended card %s rule %s value %.4f", best.card_id, best.rule_id, best.effective_value)
        return Recommendation(
            card_id=best.card_id,
            card_name=best.card_name,
            rule_id=best.rule_id,
            quote=best.quote,
            effective_value=best.effective_value,
            rationale=rationale,
            alternatives=ranked[1:],
        )
