import logging

import pytest
from fastapi.testclient import TestClient

from credora.api.app import create_app
from credora.config import Settings
from credora.engine.evaluator import ExchangeRates
from credora.repository.memory import InMemoryRepository
from credora.service.orchestrator import RewardsOrchestrator

from factories import SAMPLE_POLICY, dining_cap_card, flat_card, unlock_card


@pytest.fixture
def client(rates) -> TestClient:
    repository = InMemoryRepository(
        cards=[
            dining_cap_card(),
            unlock_card(),
            flat_card("card-c", 2, reward_type="points", user_id="u2"),
            flat_card("card-off", 0.05, user_id="u3", active=False),
        ],
        merchants={"zomato": "dining"},
    )
    orchestrator = RewardsOrchestrator(repository, rates, quote_timeout=5)
    return TestClient(create_app(orchestrator=orchestrator))


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_optimize_resolves_merchant_and_explains(client):
    response = client.post(
        "/optimize",
        json={"user_id": "u1", "amount": 4000, "merchant": "Zomato", "timestamp": "2024-06-10T12:00:00Z"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["purchase"]["category"] == "dining"
    recommendation = body["recommendation"]
    assert recommendation["card_id"] == "card-a"
    assert recommendation["quote"]["capped"] is False
    assert recommendation["quote"]["amount"] == pytest.approx(200)
    assert "capped at 500.00" in recommendation["rationale"]
    assert [alt["card_id"] for alt in recommendation["alternatives"]] == ["card-b"]


def test_optimize_with_no_eligible_card_returns_empty_recommendation(client):
    response = client.post("/optimize", json={"user_id": "u3", "amount": 100, "category": "fuel"})

    assert response.status_code == 200
    assert response.json()["recommendation"] is None
    assert response.json()["reason"]


def test_optimize_for_unknown_user_is_not_found(client):
    response = client.post("/optimize", json={"user_id": "nobody", "amount": 100, "category": "fuel"})

    assert response.status_code == 404
    assert response.json()["error"] == "UserNotFoundError"
    assert "nobody" in response.json()["detail"]


def test_requests_are_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="credora.api.app"):
        client.get("/health")

    messages = [record.getMessage() for record in caplog.records if record.name == "credora.api.app"]
    assert "GET /health" in messages
    assert "GET /health -> 200" in messages


def test_optimize_rejects_bad_input(client):
    assert client.post("/optimize", json={"user_id": "u1", "amount": -5}).status_code == 422
    assert client.post("/optimize", json={"user_id": "u1", "amount": 5, "category": "all"}).status_code == 422


def test_commit_then_goals_progress(client):
    for amount in (3000, 3000):
        response = client.post(
            "/transactions/commit",
            json={"card_id": "card-b", "rule_id": "spend-unlock", "amount": amount, "timestamp": "2024-06-03T10:00:00Z"},
        )
        assert response.status_code == 200

    assert response.json()["state"]["spend_to_date"] == 6000
    assert response.json()["state"]["version"] == 2

    progress = client.get("/goals/card-b/spend-unlock", params={"as_of": "2024-06-20T00:00:00Z"})
    assert progress.status_code == 200
    body = progress.json()
    assert body["progress"]["unlocked"] is True
    assert body["progress"]["remaining_to_unlock"] == 0
    assert [state["window_key"] for state in body["history"]] == ["2024-06"]

    quote = client.post(
        "/optimize",
        json={"user_id": "u1", "amount": 1000, "category": "fuel", "timestamp": "2024-06-21T09:00:00Z"},
    )
    assert quote.json()["recommendation"]["quote"]["unlocked_bonus"] is True


def test_commit_error_mapping(client):
    missing = client.post(
        "/transactions/commit",
        json={"card_id": "card-a", "rule_id": "nope", "amount": 10, "timestamp": "2024-06-03T10:00:00Z"},
    )
    assert missing.status_code == 404
    assert missing.json()["error"] == "RuleNotFoundError"
    assert missing.json()["rule_id"] == "nope"

    out_of_range = client.post(
        "/transactions/commit",
        json={"card_id": "card-a", "rule_id": "dining-5", "amount": 10, "timestamp": "1965-01-01T00:00:00Z"},
    )
    assert out_of_range.status_code == 422
    assert out_of_range.json()["error"] == "InvalidWindowError"


def test_configuration_error_is_not_silenced():
    repository = InMemoryRepository(cards=[flat_card("card-c", 2, reward_type="points")])
    orchestrator = RewardsOrchestrator(repository, ExchangeRates({"cashback": 1.0}))
    client = TestClient(create_app(orchestrator=orchestrator))

    response = client.post("/optimize", json={"user_id": "u1", "amount": 100, "category": "dining"})

    assert response.status_code == 500
    assert response.json()["error"] == "ConfigurationError"
    assert response.json()["card_id"] == "card-c"


class BrokenOrchestrator:
    def optimize(self, request):
        raise RuntimeError("database password is hunter2")


def test_unexpected_errors_do_not_leak_details():
    client = TestClient(create_app(orchestrator=BrokenOrchestrator()), raise_server_exceptions=False)

    response = client.post("/optimize", json={"user_id": "u1", "amount": 100})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}


def test_app_from_settings_uses_policy_file():
    app_settings = Settings(card_policy_file=str(SAMPLE_POLICY))
    client = TestClient(create_app(app_settings=app_settings))

    response = client.post("/optimize", json={"user_id": "demo-user", "amount": 2000, "merchant": "amazon"})

    assert response.status_code == 200
    assert response.json()["recommendation"]["card_id"] == "hdfc-millennia"
