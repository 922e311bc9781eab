"""Fixtures shared by the feeds and bot tests."""

import pytest


@pytest.fixture
def db_path(tmp_path) -> str:
    """Throwaway subscription database file."""
    return str(tmp_path / "subscriptions.db")


@pytest.fixture
def simulator_env(db_path) -> dict[str, str]:
    """Environment for a token-less service on the simulated feed."""
    return {"TRADE_FEED_SOURCE": "simulator", "DATABASE_PATH": db_path}
