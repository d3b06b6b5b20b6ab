from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from app.core.config import Settings
from app.domain import LedgerPosition, Market


@pytest.fixture
def sample_market_payload() -> dict[str, object]:
    path = Path(__file__).parent / "data" / "sample_market.json"
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def yes_no_market() -> Market:
    return Market(
        market_id="516710",
        condition_id="0xcondition",
        question="Will the Fed cut rates in December 2025?",
        description="",
        outcomes=("Yes", "No"),
        outcome_prices=("0.7", "0.3"),
        volume="1000",
        liquidity="250",
        active=True,
    )


@pytest.fixture
def make_position():
    counter = {"value": 0}

    def _make(user: str, outcome: str, market: str = "0xcondition") -> LedgerPosition:
        counter["value"] += 1
        return LedgerPosition(
            position_id=f"pos-{counter['value']}",
            user_id=user,
            outcome=outcome,
            market_id=market,
            quantity_bought="10",
            quantity_sold="0",
        )

    return _make


@pytest.fixture
def test_settings(monkeypatch) -> Settings:
    settings = Settings(
        polymarket_base_url="https://gamma.test",
        subgraph_url="https://subgraph.test/graphql",
        ledger_page_size=1000,
        ledger_max_skip=10_000,
        cors_allowed_origins="http://localhost:5173",
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    monkeypatch.setattr("ingestion.gamma_client.settings", settings)
    monkeypatch.setattr("ingestion.subgraph_client.settings", settings)
    return settings
