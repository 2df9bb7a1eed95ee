class RewardEngineError(Exception):
    """Base error. ``card_id``/``rule_id`` name the card and rule that triggered it, when known."""

    def __init__(self, message: str, card_id: str | None = None, rule_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.card_id = card_id
        self.rule_id = rule_id

    def annotate(self, card_id: str | None = None, rule_id: str | None = None) -> "RewardEngineError":
        if self.card_id is None:
            self.card_id = card_id
        if self.rule_id is None:
            self.rule_id = rule_id
        return self

    def __str__(self) -> str:
        context = [f"{name}={value}" for name, value in (("card", self.card_id), ("rule", self.rule_id)) if value]
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class NoEligibleCardError(RewardEngineError):
    pass


class InvalidWindowError(RewardEngineError):
    pass


class ConcurrentUpdateError(RewardEngineError):
    pass


class ConfigurationError(RewardEngineError):
    pass


class RuleNotFoundError(RewardEngineError):
    pass


class QuoteCancelledError(RewardEngineError):
    pass


class UserNotFoundError(RewardEngineError):
    pass
