"""Typed domain representations shared by ingestion, statistics, and the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union


@dataclass(frozen=True, slots=True)
class Market:
    """Canonical market snapshot built from one catalog record."""

    market_id: str
    condition_id: str
    question: str
    description: str
    outcomes: tuple[str, ...] = ()
    outcome_prices: tuple[str, ...] = ()
    end_date: datetime | None = None
    volume: str = "0"
    liquidity: str = "0"
    active: bool = False


@dataclass(frozen=True, slots=True)
class LedgerPosition:
    """One bettor's stake in a single outcome of a market."""

    position_id: str
    user_id: str
    outcome: str
    market_id: str
    quantity_bought: str = "0"
    quantity_sold: str = "0"


@dataclass(slots=True)
class LedgerAggregate:
    """Distinct bettors grouped by outcome label."""

    by_outcome: dict[str, set[str]] = field(default_factory=dict)
    users: set[str] = field(default_factory=set)

    @property
    def total_users(self) -> int:
        return len(self.users)

    def user_count(self, outcome: str) -> int:
        return len(self.by_outcome.get(outcome, ()))


@dataclass(frozen=True, slots=True)
class LedgerDerived:
    """Percentages were computed from distinct bettors on the ledger."""

    total_users: int
    kind: str = "ledger"


@dataclass(frozen=True, slots=True)
class PriceDerived:
    """Percentages were read off outcome prices; bettor counts are unknown."""

    reason: str
    kind: str = "price"


StatsSource = Union[LedgerDerived, PriceDerived]


@dataclass(frozen=True, slots=True)
class OutcomeStat:
    outcome: str
    outcome_index: int
    user_count: int
    percentage: float
    price: str


@dataclass(frozen=True, slots=True)
class MarketStats:
    """Per-outcome distribution plus the most popular outcome for a market.

    ``total_users`` is ``0`` whenever ``source`` is :class:`PriceDerived`;
    that zero means "unknown", not "nobody bet".
    """

    market_id: str
    question: str
    total_users: int
    outcome_stats: tuple[OutcomeStat, ...]
    popular_outcome: str
    popular_pct: float
    source: StatsSource

    @property
    def total_users_known(self) -> bool:
        return isinstance(self.source, LedgerDerived)
