from abc import ABC, abstractmethod

from credora.domain.models import Card, RewardCategory, RewardRule, ThresholdState


class RewardRepository(ABC):
    """Persistence contract consumed by the tracker and the orchestrator.

    ``save_threshold_state`` is a compare-and-swap: it stores ``state`` with
    ``version = expected_version + 1`` only if the stored row for the same
    (card_id, rule_id, window_key) still carries ``expected_version``
    (0 meaning "no row yet"), and returns ``False`` otherwise.
    """

    @abstractmethod
    def load_cards_for_user(self, user_id: str) -> list[Card]: ...

    @abstractmethod
    def load_card(self, card_id: str) -> Card | None: ...

    def load_rules_for_card(self, card_id: str) -> list[RewardRule]:
        card = self.load_card(card_id)
        return list(card.rules) if card else []

    @abstractmethod
    def load_threshold_state(self, card_id: str, rule_id: str, window_key: str) -> ThresholdState | None: ...

    @abstractmethod
    def load_latest_threshold_state(self, card_id: str, rule_id: str) -> ThresholdState | None: ...

    @abstractmethod
    def save_threshold_state(self, state: ThresholdState, expected_version: int) -> bool: ...

    @abstractmethod
    def list_threshold_states(self, card_id: str, rule_id: str) -> list[ThresholdState]: ...

    def resolve_merchant_category(self, merchant: str) -> RewardCategory | None:
        return None
