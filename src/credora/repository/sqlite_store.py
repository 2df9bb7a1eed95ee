import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable

from credora.domain.models import Card, RewardCategory, ThresholdState
from credora.repository.base import RewardRepository


class SqliteRepository(RewardRepository):
    """SQLite store. Rules are kept as a JSON column on the card row."""

    def __init__(self, path: str = "credora.db") -> None:
        self.path = Path(path)
        self._init_schema()

    @contextmanager
    def connect(self):
        conn = sqlite3.connect(self.path, timeout=5.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self.connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS cards (
                    card_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    card_name TEXT NOT NULL DEFAULT '',
                    bank TEXT NOT NULL DEFAULT '',
                    network TEXT NOT NULL DEFAULT '',
                    active INTEGER NOT NULL DEFAULT 1,
                    annual_fee REAL,
                    base_rate REAL NOT NULL DEFAULT 0,
                    rules TEXT NOT NULL DEFAULT '[]'
                );

                CREATE INDEX IF NOT EXISTS idx_cards_user ON cards(user_id);

                CREATE TABLE IF NOT EXISTS threshold_state (
                    card_id TEXT NOT NULL,
                    rule_id TEXT NOT NULL,
                    window_key TEXT NOT NULL,
                    window_start TEXT NOT NULL,
                    window_end TEXT NOT NULL,
                    spend_to_date REAL NOT NULL DEFAULT 0,
                    reward_earned_to_date REAL NOT NULL DEFAULT 0,
                    version INTEGER NOT NULL,
                    finalized INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (card_id, rule_id, window_key)
                );

                CREATE TABLE IF NOT EXISTS merchants (
                    merchant TEXT PRIMARY KEY,
                    category TEXT NOT NULL
                );
                """
            )

    def upsert_cards(self, cards: Iterable[Card]) -> None:
        with self.connect() as conn:
            conn.executemany(
                """
                INSERT INTO cards(card_id, user_id, card_name, bank, network, active, annual_fee, base_rate, rules)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(card_id) DO UPDATE SET
                    user_id=excluded.user_id,
                    card_name=excluded.card_name,
                    bank=excluded.bank,
                    network=excluded.network,
                    active=excluded.active,
                    annual_fee=excluded.annual_fee,
                    base_rate=excluded.base_rate,
                    rules=excluded.rules
                """,
                [
                    (
                        c.card_id,
                        c.user_id,
                        c.card_name,
                        c.bank,
                        c.network,
                        int(c.active),
                        c.annual_fee,
                        c.base_rate,
                        json.dumps([rule.model_dump(mode="json") for rule in c.rules]),
                    )
                    for c in cards
                ],
            )

    def upsert_merchants(self, merchants: dict[str, RewardCategory]) -> None:
        with self.connect() as conn:
            conn.executemany(
                """
                INSERT INTO merchants(merchant, category) VALUES (?, ?)
                ON CONFLICT(merchant) DO UPDATE SET category=excluded.category
                """,
                [(name.strip().lower(), RewardCategory(category).value) for name, category in merchants.items()],
            )

    @staticmethod
    def _card_from_row(row: sqlite3.Row) -> Card:
        return Card.model_validate(
            {
                "card_id": row["card_id"],
                "user_id": row["user_id"],
                "card_name": row["card_name"],
                "bank": row["bank"],
                "network": row["network"],
                "active": bool(row["active"]),
                "annual_fee": row["annual_fee"],
                "base_rate": row["base_rate"],
                "rules": json.loads(row["rules"]),
            }
        )

    @staticmethod
    def _state_from_row(row: sqlite3.Row) -> ThresholdState:
        return ThresholdState(
            card_id=row["card_id"],
            rule_id=row["rule_id"],
            window_key=row["window_key"],
            window_start=datetime.fromisoformat(row["window_start"]),
            window_end=datetime.fromisoformat(row["window_end"]),
            spend_to_date=row["spend_to_date"],
            reward_earned_to_date=row["reward_earned_to_date"],
            version=row["version"],
            finalized=bool(row["finalized"]),
        )

    def load_cards_for_user(self, user_id: str) -> list[Card]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM cards WHERE user_id = ? ORDER BY card_id", (user_id,)).fetchall()
        return [self._card_from_row(row) for row in rows]

    def load_card(self, card_id: str) -> Card | None:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM cards WHERE card_id = ?", (card_id,)).fetchone()
        return self._card_from_row(row) if row else None

    def load_threshold_state(self, card_id: str, rule_id: str, window_key: str) -> ThresholdState | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM threshold_state WHERE card_id = ? AND rule_id = ? AND window_key = ?",
                (card_id, rule_id, window_key),
            ).fetchone()
        return self._state_from_row(row) if row else None

    def load_latest_threshold_state(self, card_id: str, rule_id: str) -> ThresholdState | None:
        with self.connect() as conn:
            row = conn.execute(
                """
                SELECT * FROM threshold_state
                WHERE card_id = ? AND rule_id = ?
                ORDER BY window_start DESC
                LIMIT 1
                """,
                (card_id, rule_id),
            ).fetchone()
        return self._state_from_row(row) if row else None

    def list_threshold_states(self, card_id: str, rule_id: str) -> list[ThresholdState]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM threshold_state WHERE card_id = ? AND rule_id = ? ORDER BY window_start",
                (card_id, rule_id),
            ).fetchall()
        return [self._state_from_row(row) for row in rows]

    def save_threshold_state(self, state: ThresholdState, expected_version: int) -> bool:
        values = (
            state.window_start.isoformat(),
            state.window_end.isoformat(),
            state.spend_to_date,
            state.reward_earned_to_date,
            expected_version + 1,
            int(state.finalized),
        )
        with self.connect() as conn:
            if expected_version == 0:
                result = conn.execute(
                    """
                    INSERT OR IGNORE INTO threshold_state(
                        card_id, rule_id, window_key, window_start, window_end,
                        spend_to_date, reward_earned_to_date, version, finalized
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (state.card_id, state.rule_id, state.window_key, *values),
                )
            else:
                result = conn.execute(
                    """
                    UPDATE threshold_state SET
                        window_start = ?, window_end = ?, spend_to_date = ?,
                        reward_earned_to_date = ?, version = ?, finalized = ?
                    WHERE card_id = ? AND rule_id = ? AND window_key = ? AND version = ?
                    """,
                    (*values, state.card_id, state.rule_id, state.window_key, expected_version),
                )
        return result.rowcount == 1

    def resolve_merchant_category(self, merchant: str) -> RewardCategory | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT category FROM merchants WHERE merchant = ?", (merchant.strip().lower(),)
            ).fetchone()
        return RewardCategory(row["category"]) if row else None
