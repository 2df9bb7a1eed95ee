import logging
from datetime import datetime, timezone, tzinfo

from credora.domain.errors import (
    ConcurrentUpdateError,
    InvalidWindowError,
    RewardEngineError,
    RuleNotFoundError,
)
from credora.domain.models import GoalProgress, RewardRule, ThresholdState, Transaction
from credora.engine.evaluator import quote
from credora.engine.windows import WindowInstance, resolve_window
from credora.repository.base import RewardRepository

logger = logging.getLogger(__name__)


class ThresholdTracker:
    """Owns cumulative spend/reward counters per (card, rule, window instance).

    Reads never create or mutate state. ``commit`` is the only writer; it uses
    the repository's version-stamped compare-and-swap and retries on conflict.
    Rollover of an expired window happens lazily inside ``commit`` and is logged.
    """

    def __init__(self, repository: RewardRepository, max_retries: int = 3, reporting_tz: tzinfo = timezone.utc):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.repository = repository
        self.max_retries = max_retries
        self.reporting_tz = reporting_tz

    def load_rule(self, card_id: str, rule_id: str) -> RewardRule:
        for rule in self.repository.load_rules_for_card(card_id):
            if rule.rule_id == rule_id:
                return rule
        raise RuleNotFoundError("Unknown reward rule", card_id=card_id, rule_id=rule_id)

    def _resolve(self, rule: RewardRule, as_of: datetime) -> WindowInstance:
        try:
            return resolve_window(rule.window, as_of, self.reporting_tz)
        except RewardEngineError as exc:
            raise exc.annotate(card_id=rule.card_id, rule_id=rule.rule_id)

    @staticmethod
    def _zero_state(card_id: str, rule_id: str, instance: WindowInstance) -> ThresholdState:
        return ThresholdState(
            card_id=card_id,
            rule_id=rule_id,
            window_key=instance.key,
            window_start=instance.start,
            window_end=instance.end,
        )

    def get_state(
        self,
        card_id: str,
        rule_id: str,
        as_of: datetime,
        rule: RewardRule | None = None,
    ) -> ThresholdState:
        rule = rule or self.load_rule(card_id, rule_id)
        instance = self._resolve(rule, as_of)

        stored = self.repository.load_threshold_state(card_id, rule_id, instance.key)
        if stored is not None:
            return stored

        latest = self.repository.load_latest_threshold_state(card_id, rule_id)
        if latest is not None and not latest.finalized and latest.window_start < instance.start:
            logger.info(
                "Window %s for card %s rule %s has ended; rollover to %s pending until next commit",
                latest.window_key,
                card_id,
                rule_id,
                instance.key,
            )
        return self._zero_state(card_id, rule_id, instance)

    def _roll_over(self, card_id: str, rule_id: str, instance: WindowInstance) -> bool:
        latest = self.repository.load_latest_threshold_state(card_id, rule_id)
        if latest is None or latest.window_key == instance.key:
            return True

        if instance.start < latest.window_start:
            raise InvalidWindowError(
                f"Window {instance.key} closed when {latest.window_key} opened",
                card_id=card_id,
                rule_id=rule_id,
            )
        if latest.finalized:
            return True

        finalized = latest.model_copy(update={"finalized": True})
        if not self.repository.save_threshold_state(finalized, expected_version=latest.version):
            return False

        logger.info(
            "Rolled over card %s rule %s: finalized %s (spend=%.2f, reward=%.2f), opening %s",
            card_id,
            rule_id,
            latest.window_key,
            latest.spend_to_date,
            latest.reward_earned_to_date,
            instance.key,
        )
        return True

    def commit(self, card_id: str, rule_id: str, transaction: Transaction) -> ThresholdState:
        if transaction.card_id != card_id:
            raise ValueError(f"Transaction belongs to card {transaction.card_id}, not {card_id}")

        rule = self.load_rule(card_id, rule_id)
        instance = self._resolve(rule, transaction.timestamp)

        for attempt in range(1, self.max_retries + 1):
            if self._roll_over(card_id, rule_id, instance):
                current = self.repository.load_threshold_state(card_id, rule_id, instance.key)
                if current is None:
                    current = self._zero_state(card_id, rule_id, instance)
                if current.finalized:
                    raise InvalidWindowError(
                        f"Window {instance.key} is finalized", card_id=card_id, rule_id=rule_id
                    )

                earned = quote(rule, transaction, current)
                reward_total = current.reward_earned_to_date + earned.amount
                if rule.cap is not None:
                    # Float drift must not push the window total past the cap.
                    reward_total = min(reward_total, max(rule.cap.max_reward, current.reward_earned_to_date))
                updated = current.model_copy(
                    update={
                        "spend_to_date": current.spend_to_date + transaction.amount,
                        "reward_earned_to_date": reward_total,
                    }
                )
                if self.repository.save_threshold_state(updated, expected_version=current.version):
                    stored = updated.model_copy(update={"version": current.version + 1})
                    logger.info(
                        "Committed %.2f on card %s rule %s in %s: reward +%.4f %s (capped=%s)",
                        transaction.amount,
                        card_id,
                        rule_id,
                        instance.key,
                        earned.amount,
                        earned.unit,
                        earned.capped,
                    )
                    return stored

            logger.warning(
                "Concurrent update on card %s rule %s window %s (attempt %d/%d)",
                card_id,
                rule_id,
                instance.key,
                attempt,
                self.max_retries,
            )

        raise ConcurrentUpdateError(
            f"Gave up on window {instance.key} after {self.max_retries} attempts",
            card_id=card_id,
            rule_id=rule_id,
        )

    def history(self, card_id: str, rule_id: str) -> list[ThresholdState]:
        self.load_rule(card_id, rule_id)
        return self.repository.list_threshold_states(card_id, rule_id)

    def goal_progress(self, card_id: str, rule_id: str, as_of: datetime) -> GoalProgress:
        rule = self.load_rule(card_id, rule_id)
        state = self.get_state(card_id, rule_id, as_of, rule=rule)
        progress = GoalProgress(state=state)

        if rule.cap is not None:
            progress.cap = rule.cap.max_reward
            progress.remaining_to_cap = max(0.0, rule.cap.max_reward - state.reward_earned_to_date)

        threshold = rule.cumulative_threshold
        if threshold is not None:
            progress.unlock_threshold = threshold.min_spend
            progress.remaining_to_unlock = max(0.0, threshold.min_spend - state.spend_to_date)
            progress.unlocked = state.spend_to_date >= threshold.min_spend
        return progress
