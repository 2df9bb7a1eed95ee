from credora.domain.errors import (
    ConcurrentUpdateError,
    ConfigurationError,
    InvalidWindowError,
    NoEligibleCardError,
    QuoteCancelledError,
    RewardEngineError,
    RuleNotFoundError,
    UserNotFoundError,
)
from credora.domain.models import (
    Card,
    Purchase,
    Recommendation,
    RewardCategory,
    RewardQuote,
    RewardRule,
    RewardType,
    ThresholdState,
    Transaction,
)
from credora.engine.evaluator import ExchangeRates, quote
from credora.engine.matcher import match_rules
from credora.engine.selectors import Optimizer
from credora.engine.tracker import ThresholdTracker
from credora.repository.memory import InMemoryRepository
from credora.repository.policy_store import PolicyStore
from credora.service.orchestrator import RewardsOrchestrator

__all__ = [
    "Card",
    "ConcurrentUpdateError",
    "ConfigurationError",
    "ExchangeRates",
    "InMemoryRepository",
    "InvalidWindowError",
    "NoEligibleCardError",
    "Optimizer",
    "PolicyStore",
    "Purchase",
    "QuoteCancelledError",
    "Recommendation",
    "RewardCategory",
    "RewardEngineError",
    "RewardQuote",
    "RewardRule",
    "RewardType",
    "RewardsOrchestrator",
    "RuleNotFoundError",
    "ThresholdState",
    "ThresholdTracker",
    "Transaction",
    "UserNotFoundError",
    "match_rules",
    "quote",
]
