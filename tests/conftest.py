from __future__ import annotations

from pathlib import Path

import pytest

from uk_invest.config_loader import find_broker, load_brokers_from_yaml
from uk_invest.models import UserProfile

BROKERS_PATH = Path(__file__).resolve().parents[1] / "data" / "brokers.yaml"

_AUTO = object()


def _make_profile(accounts=("isa",), portfolio_value=50000, balances=_AUTO, investment_types=("etfs",), **overrides):
    """Profile with balances split evenly across accounts unless given (None = no balances)."""
    if balances is _AUTO:
        balances = {account: portfolio_value / len(accounts) for account in accounts}
    return UserProfile(
        accounts=tuple(accounts),
        investment_types=tuple(investment_types),
        portfolio_value=portfolio_value,
        balances=balances,
        **overrides,
    )


@pytest.fixture(scope="session")
def brokers():
    return load_brokers_from_yaml(BROKERS_PATH)


@pytest.fixture(scope="session")
def broker(brokers):
    def _get(name):
        found = find_broker(brokers, name)
        assert found is not None, f"Broker not found: {name}"
        return found

    return _get


@pytest.fixture
def make_profile():
    return _make_profile
