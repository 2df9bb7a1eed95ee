from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    card_policy_file: str = "data/cards/sample_cards.json"

    repository_backend: str = "memory"
    sqlite_path: str = "credora.db"

    # Currency value of one unit of each reward type.
    exchange_rates: dict[str, float] = {
        "cashback": 1.0,
        "discount": 1.0,
        "points": 0.25,
        "miles_or_lounge_access": 0.5,
    }
    currency: str = "INR"
    # IANA name; reward windows reset at midnight in this zone.
    reporting_timezone: str = "UTC"

    commit_max_retries: int = 3
    quote_timeout_seconds: float = 2.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def reporting_tz(self) -> tzinfo:
        if self.reporting_timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.reporting_timezone)


settings = Settings()
