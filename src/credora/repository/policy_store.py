import json
from pathlib import Path

from credora.domain.models import Card, RewardCategory
from credora.repository.memory import InMemoryRepository


class PolicyStore:
    """Reads cards, their reward rules and a merchant directory from a JSON policy file.

    The file is either a list of cards or an object with ``cards`` and an
    optional ``merchants`` map of merchant name to category.
    """

    def __init__(self, policy_file: str):
        self.policy_file = Path(policy_file)

    def _load(self) -> dict:
        if not self.policy_file.exists():
            raise FileNotFoundError(f"Policy file not found: {self.policy_file}")

        with self.policy_file.open("r", encoding="utf-8") as fh:
            data = json.load(fh)

        if isinstance(data, list):
            return {"cards": data, "merchants": {}}
        return {"cards": data.get("cards", []), "merchants": data.get("merchants", {})}

    def load_cards(self) -> list[Card]:
        return [Card.model_validate(item) for item in self._load()["cards"]]

    def load_merchants(self) -> dict[str, RewardCategory]:
        return {name: RewardCategory(category) for name, category in self._load()["merchants"].items()}

    def build_repository(self) -> InMemoryRepository:
        return InMemoryRepository(cards=self.load_cards(), merchants=self.load_merchants())
