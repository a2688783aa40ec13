"""Shared test fixtures."""

import pytest

from sessiontab.app import create_app


@pytest.fixture
def make_client():
    """Test client factory for apps built with config overrides."""

    def _make(**overrides):
        return create_app({"TESTING": True, **overrides}).test_client()

    return _make


@pytest.fixture
def app():
    return create_app({"TESTING": True, "CURRENCY_SYMBOL": "₱"})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def dinner_snapshot():
    """Alice pays 100 for dinner shared equally with Bob."""
    return {
        "members": [
            {"id": "m-alice", "name": "Alice"},
            {"id": "m-bob", "name": "Bob"},
            {"id": "m-carol", "name": "Carol"},
        ],
        "orders": [{"id": "o-dinner", "name": "Dinner", "total_amount": 100}],
        "order_payers": [
            {"order_id": "o-dinner", "member_id": "m-alice", "amount_paid": 100},
        ],
        "order_consumers": [
            {"order_id": "o-dinner", "member_id": "m-alice", "split_ratio": 1},
            {"order_id": "o-dinner", "member_id": "m-bob", "split_ratio": 1},
        ],
    }
