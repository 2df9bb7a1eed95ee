import threading

from credora.domain.models import Card, RewardCategory, ThresholdState
from credora.repository.base import RewardRepository


class InMemoryRepository(RewardRepository):
    def __init__(self, cards: list[Card] | None = None, merchants: dict[str, RewardCategory] | None = None):
        self._cards: dict[str, Card] = {}
        self._states: dict[tuple[str, str, str], ThresholdState] = {}
        self._merchants = {name.strip().lower(): RewardCategory(category) for name, category in (merchants or {}).items()}
        # Guards the compare-and-swap on the state map only; commits never hold it across I/O.
        self._swap_lock = threading.Lock()
        for card in cards or []:
            self.add_card(card)

    def add_card(self, card: Card) -> None:
        self._cards[card.card_id] = card

    def load_cards_for_user(self, user_id: str) -> list[Card]:
        return sorted(
            (card for card in self._cards.values() if card.user_id == user_id),
            key=lambda card: card.card_id,
        )

    def load_card(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def load_threshold_state(self, card_id: str, rule_id: str, window_key: str) -> ThresholdState | None:
        state = self._states.get((card_id, rule_id, window_key))
        return state.model_copy() if state else None

    def load_latest_threshold_state(self, card_id: str, rule_id: str) -> ThresholdState | None:
        states = self.list_threshold_states(card_id, rule_id)
        return states[-1] if states else None

    def list_threshold_states(self, card_id: str, rule_id: str) -> list[ThresholdState]:
        matching = [
            state.model_copy()
            for (c_id, r_id, _), state in self._states.items()
            if c_id == card_id and r_id == rule_id
        ]
        return sorted(matching, key=lambda state: state.window_start)

    def save_threshold_state(self, state: ThresholdState, expected_version: int) -> bool:
        key = (state.card_id, state.rule_id, state.window_key)
        with self._swap_lock:
            current = self._states.get(key)
            current_version = current.version if current else 0
            if current_version != expected_version:
                return False
            self._states[key] = state.model_copy(update={"version": expected_version + 1})
            return True

    def resolve_merchant_category(self, merchant: str) -> RewardCategory | None:
        return self._merchants.get(merchant.strip().lower())
