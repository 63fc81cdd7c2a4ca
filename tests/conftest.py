"""
Pytest configuration and shared fixtures for CropMarket tests.
"""

import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

# Add the repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cropmarket.api import create_app  # noqa: E402
from cropmarket.circuit_breaker import CircuitBreaker  # noqa: E402
from cropmarket.config import Settings  # noqa: E402
from cropmarket.logging_config import configure_logging  # noqa: E402
from cropmarket.repository import FavoriteSellerRepo, MarketStore  # noqa: E402
from cropmarket.security.passwords import hash_password  # noqa: E402
from cropmarket.services.assistant import FarmerAssistant  # noqa: E402

configure_logging(level="WARNING", log_format="console")

PASSWORD = "harvest2024"
FAST_ROUNDS = 4


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch) -> None:
    """Sign-up hashes at bcrypt's minimum cost; verification reads the cost from the hash."""
    monkeypatch.setattr(
        "cropmarket.services.auth.hash_password",
        lambda password: hash_password(password, rounds=FAST_ROUNDS),
    )


@pytest.fixture
def settings(monkeypatch) -> Settings:
    """Settings built from a clean environment."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("CHECKOUT_TAX_RATE", raising=False)
    monkeypatch.delenv("DISABLE_ASSISTANT", raising=False)
    return Settings()


@pytest.fixture
def store(tmp_path: Path) -> MarketStore:
    return MarketStore(tmp_path / "cropmarket.db")


@pytest.fixture
def make_user(store: MarketStore) -> Callable[..., Dict[str, Any]]:
    """Create a user + profile directly in the store (cheap hash for speed)."""
    counter = {"n": 0}

    def _make(role: str = "buyer", **profile: Any) -> Dict[str, Any]:
        counter["n"] += 1
        email = f"{role}{counter['n']}@example.com"
        user = store.create_user(
            email,
            hash_password(PASSWORD, rounds=FAST_ROUNDS),
            full_name=profile.pop("full_name", f"{role.title()} {counter['n']}"),
            role=role,
        )
        if profile:
            user = store.update_profile(user["id"], profile)
        return user

    return _make


@pytest.fixture
def sample_listing_data() -> Dict[str, Any]:
    return {
        "title": "Organic Tomatoes",
        "description": "Vine-ripened tomatoes",
        "price": 40.0,
        "quantity": 10,
        "unit": "kg",
        "category": "vegetables",
        "quality_grade": "A",
        "location_lat": 28.6139,
        "location_lng": 77.2090,
        "location_address": "New Delhi",
    }


class FakeMessages:
    """Stand-in for ``anthropic.Anthropic().messages``."""

    def __init__(self, text: str = "Water early in the morning.", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[Dict[str, Any]] = []

    def create(self, *, model, max_tokens, temperature, system, messages, timeout):
        self.calls.append(
            {
                "model": model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "system": system,
                "messages": messages,
                "timeout": timeout,
            }
        )
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            content=[SimpleNamespace(text=self.text)],
            usage=SimpleNamespace(input_tokens=10, output_tokens=20),
        )


@pytest.fixture
def fake_messages() -> FakeMessages:
    return FakeMessages()


@pytest.fixture
def assistant(settings: Settings, fake_messages: FakeMessages) -> FarmerAssistant:
    return FarmerAssistant(
        client=SimpleNamespace(messages=fake_messages),
        breaker=CircuitBreaker(name="test_assistant", failure_threshold=2, timeout=60),
        settings=settings,
    )


@pytest.fixture
def app(tmp_path: Path, settings: Settings, assistant: FarmerAssistant):
    return create_app(
        db_path=tmp_path / "api.db",
        storage_path=tmp_path / "storage",
        rate_limit_path=tmp_path / "rate_limits.db",
        settings=settings,
        assistant=assistant,
        favorites=FavoriteSellerRepo(use_db=False),
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def signup(client: TestClient) -> Callable[..., Dict[str, Any]]:
    """Sign up and sign in through the API; returns profile plus auth headers."""
    counter = {"n": 0}

    def _signup(role: str = "buyer", full_name: str | None = None) -> Dict[str, Any]:
        counter["n"] += 1
        email = f"api-{role}{counter['n']}@example.com"
        resp = client.post(
            "/v1/auth/signup",
            json={"email": email, "password": PASSWORD, "role": role, "full_name": full_name or f"{role} {counter['n']}"},
        )
        assert resp.status_code == 201, resp.text
        resp = client.post("/v1/auth/signin", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return {
            "profile": body["profile"],
            "id": body["profile"]["id"],
            "headers": {"Authorization": f"Bearer {body['access_token']}"},
        }

    return _signup


@pytest.fixture
def farmer(signup) -> Dict[str, Any]:
    return signup("farmer", "Ravi Kumar")


@pytest.fixture
def buyer(signup) -> Dict[str, Any]:
    return signup("buyer", "Asha Verma")


@pytest.fixture
def listing(client: TestClient, farmer: Dict[str, Any], sample_listing_data: Dict[str, Any]) -> Dict[str, Any]:
    resp = client.post("/v1/listings", json=sample_listing_data, headers=farmer["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def checkout_form() -> Dict[str, Any]:
    return {
        "full_name": "Asha Verma",
        "phone": "9876543210",
        "address": "12 MG Road",
        "city": "Pune",
        "state": "Maharashtra",
        "pincode": "411001",
        "delivery_method": "standard",
        "payment_method": "cash_on_delivery",
    }
