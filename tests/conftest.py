import pytest

from credora.engine.evaluator import ExchangeRates
from credora.engine.selectors import Optimizer
from credora.engine.tracker import ThresholdTracker
from credora.repository.memory import InMemoryRepository

from factories import dining_cap_card, unlock_card


@pytest.fixture
def rates() -> ExchangeRates:
    return ExchangeRates({"cashback": 1.0, "discount": 1.0, "points": 0.25, "miles_or_lounge_access": 0.5})


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository(cards=[dining_cap_card(), unlock_card()])


@pytest.fixture
def tracker(repository) -> ThresholdTracker:
    return ThresholdTracker(repository)


@pytest.fixture
def optimizer(tracker, rates) -> Optimizer:
    return Optimizer(tracker, rates)
