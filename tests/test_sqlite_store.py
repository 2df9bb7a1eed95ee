import pytest

from credora.domain.models import RewardCategory, Transaction
from credora.engine.tracker import ThresholdTracker
from credora.repository.sqlite_store import SqliteRepository

from factories import JULY, JUNE, dining_cap_card, flat_card


@pytest.fixture
def sqlite_repo(tmp_path) -> SqliteRepository:
    repository = SqliteRepository(str(tmp_path / "credora-test.db"))
    repository.upsert_cards([dining_cap_card(), flat_card("card-x", 0.02, user_id="u2", annual_fee=250)])
    repository.upsert_merchants({"Swiggy": RewardCategory.DINING})
    return repository


def test_cards_round_trip(sqlite_repo):
    cards = sqlite_repo.load_cards_for_user("u1")

    assert [card.card_id for card in cards] == ["card-a"]
    assert cards[0].rules[0].cap.max_reward == 500
    assert sqlite_repo.load_card("card-x").annual_fee == 250
    assert sqlite_repo.load_card("missing") is None
    assert [rule.rule_id for rule in sqlite_repo.load_rules_for_card("card-x")] == ["card-x-flat"]
    assert sqlite_repo.resolve_merchant_category(" swiggy ") == RewardCategory.DINING
    assert sqlite_repo.resolve_merchant_category("unknown") is None


def test_save_is_compare_and_swap(sqlite_repo):
    tracker = ThresholdTracker(sqlite_repo)
    state = tracker.get_state("card-a", "dining-5", JUNE)

    assert sqlite_repo.save_threshold_state(state, expected_version=0) is True
    assert sqlite_repo.save_threshold_state(state, expected_version=0) is False
    assert sqlite_repo.save_threshold_state(state, expected_version=5) is False

    stored = sqlite_repo.load_threshold_state("card-a", "dining-5", "2024-06")
    assert stored.version == 1
    assert stored.window_start == state.window_start


def test_tracker_commits_and_rolls_over_in_sqlite(sqlite_repo):
    tracker = ThresholdTracker(sqlite_repo)

    tracker.commit("card-a", "dining-5", Transaction(card_id="card-a", amount=12000, category="dining", timestamp=JUNE))
    july = tracker.commit("card-a", "dining-5", Transaction(card_id="card-a", amount=1000, category="dining", timestamp=JULY))

    history = sqlite_repo.list_threshold_states("card-a", "dining-5")
    assert [state.window_key for state in history] == ["2024-06", "2024-07"]
    assert history[0].finalized is True
    assert history[0].reward_earned_to_date == 500
    assert july.reward_earned_to_date == pytest.approx(50)
    assert sqlite_repo.load_latest_threshold_state("card-a", "dining-5").window_key == "2024-07"
