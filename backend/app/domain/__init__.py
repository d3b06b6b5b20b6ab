"""Domain models representing normalized market data and derived statistics."""

from .models import (
    LedgerAggregate,
    LedgerDerived,
    LedgerPosition,
    Market,
    MarketStats,
    OutcomeStat,
    PriceDerived,
    StatsSource,
)

__all__ = [
    "LedgerAggregate",
    "LedgerDerived",
    "LedgerPosition",
    "Market",
    "MarketStats",
    "OutcomeStat",
    "PriceDerived",
    "StatsSource",
]
