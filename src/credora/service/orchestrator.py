import logging
from datetime import datetime, timezone, tzinfo
from pathlib import Path

from credora.config import Settings
from credora.domain.errors import NoEligibleCardError, UserNotFoundError
from credora.domain.models import Purchase, RewardCategory, ThresholdState, Transaction
from credora.engine.deadline import Deadline
from credora.engine.evaluator import ExchangeRates
from credora.engine.selectors import Optimizer
from credora.engine.tracker import ThresholdTracker
from credora.repository.base import RewardRepository
from credora.repository.policy_store import PolicyStore
from credora.repository.sqlite_store import SqliteRepository
from credora.schemas.requests import CommitRequest, OptimizeRequest
from credora.schemas.responses import GoalsProgressResponse, OptimizeResponse

logger = logging.getLogger(__name__)


def build_repository(settings: Settings) -> RewardRepository:
    if settings.repository_backend == "memory":
        return PolicyStore(settings.card_policy_file).build_repository()

    if settings.repository_backend == "sqlite":
        repository = SqliteRepository(settings.sqlite_path)
        if Path(settings.card_policy_file).exists():
            store = PolicyStore(settings.card_policy_file)
            repository.upsert_cards(store.load_cards())
            repository.upsert_merchants(store.load_merchants())
        return repository

    raise ValueError(f"Unknown repository backend: {settings.repository_backend}")


class RewardsOrchestrator:
    """The optimize / commit / goals-progress entry points used by the adapters."""

    def __init__(
        self,
        repository: RewardRepository,
        exchange_rates: ExchangeRates,
        max_retries: int = 3,
        currency: str = "INR",
        quote_timeout: float | None = None,
        reporting_tz: tzinfo = timezone.utc,
    ):
        self.repository = repository
        self.tracker = ThresholdTracker(repository, max_retries=max_retries, reporting_tz=reporting_tz)
        self.optimizer = Optimizer(self.tracker, exchange_rates, currency=currency)
        self.quote_timeout = quote_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "RewardsOrchestrator":
        return cls(
            repository=build_repository(settings),
            exchange_rates=ExchangeRates(settings.exchange_rates),
            max_retries=settings.commit_max_retries,
            currency=settings.currency,
            quote_timeout=settings.quote_timeout_seconds,
            reporting_tz=settings.reporting_tz,
        )

    def _resolve_category(self, category: RewardCategory | None, merchant: str | None) -> RewardCategory:
        if category is not None:
            return category
        if merchant:
            resolved = self.repository.resolve_merchant_category(merchant)
            if resolved is not None:
                return resolved
        return RewardCategory.UNCATEGORIZED

    def _build_purchase(self, request: OptimizeRequest) -> Purchase:
        return Purchase(
            amount=request.amount,
            category=self._resolve_category(request.category, request.merchant),
            merchant=request.merchant,
            timestamp=request.timestamp or datetime.now(timezone.utc),
        )

    def optimize(self, request: OptimizeRequest, deadline: Deadline | None = None) -> OptimizeResponse:
        purchase = self._build_purchase(request)
        if deadline is None and self.quote_timeout is not None:
            deadline = Deadline(self.quote_timeout)

        cards = self.repository.load_cards_for_user(request.user_id)
        if not cards:
            raise UserNotFoundError(f"No cards on file for user {request.user_id}")
        try:
            recommendation = self.optimizer.recommend(purchase, cards, deadline=deadline)
        except NoEligibleCardError as exc:
            return OptimizeResponse(purchase=purchase, recommendation=None, reason=str(exc))

        return OptimizeResponse(purchase=purchase, recommendation=recommendation)

    def commit_transaction(self, request: CommitRequest) -> ThresholdState:
        transaction = Transaction(
            card_id=request.card_id,
            transaction_id=request.transaction_id,
            amount=request.amount,
            category=self._resolve_category(request.category, request.merchant),
            merchant=request.merchant,
            timestamp=request.timestamp,
        )
        return self.tracker.commit(request.card_id, request.rule_id, transaction)

    def goals_progress(self, card_id: str, rule_id: str, as_of: datetime | None = None) -> GoalsProgressResponse:
        progress = self.tracker.goal_progress(card_id, rule_id, as_of or datetime.now(timezone.utc))
        return GoalsProgressResponse(progress=progress, history=self.tracker.history(card_id, rule_id))
