"""Outcome distribution and popular-outcome derivation for a single market."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, Sequence

from loguru import logger

from app.core.errors import UpstreamError
from app.domain import (
    LedgerAggregate,
    LedgerDerived,
    LedgerPosition,
    Market,
    MarketStats,
    OutcomeStat,
    PriceDerived,
    StatsSource,
)
from ingestion.ledger import aggregate_positions
from ingestion.parsing import parse_price, parse_with_fallback

LEDGER_UNAVAILABLE = "ledger_unavailable"
LEDGER_EMPTY = "ledger_empty"
LEDGER_DISABLED = "ledger_disabled"
NO_CONDITION_ID = "no_condition_id"


class PositionSource(Protocol):
    def fetch_positions(self, condition_id: str) -> Sequence[LedgerPosition]:
        ...


def select_popular(outcome_stats: Sequence[OutcomeStat]) -> tuple[str, float]:
    """Return the first outcome holding the highest percentage.

    Percentages must strictly beat the running maximum, so earlier outcomes
    win ties and an all-zero distribution selects nothing.
    """

    popular = ""
    best = 0.0
    for stat in outcome_stats:
        if stat.percentage > best:
            best = stat.percentage
            popular = stat.outcome
    return popular, best


def _build_stats(
    market: Market, outcome_stats: list[OutcomeStat], total_users: int, source: StatsSource
) -> MarketStats:
    popular, popular_pct = select_popular(outcome_stats)
    return MarketStats(
        market_id=market.market_id,
        question=market.question,
        total_users=total_users,
        outcome_stats=tuple(outcome_stats),
        popular_outcome=popular,
        popular_pct=popular_pct,
        source=source,
    )


def stats_from_ledger(market: Market, aggregate: LedgerAggregate) -> MarketStats | None:
    """Derive percentages from distinct bettors, or ``None`` when nobody bet."""

    total = aggregate.total_users
    if total == 0:
        return None

    outcome_stats: list[OutcomeStat] = []
    for index, outcome in enumerate(market.outcomes):
        # Ledger outcome labels are positional indices, not outcome names.
        count = aggregate.user_count(str(index))
        price = market.outcome_prices[index] if index < len(market.outcome_prices) else "0"
        outcome_stats.append(
            OutcomeStat(
                outcome=outcome,
                outcome_index=index,
                user_count=count,
                percentage=100.0 * count / total,
                price=price,
            )
        )
    return _build_stats(market, outcome_stats, total, LedgerDerived(total_users=total))


def stats_from_prices(market: Market, reason: str) -> MarketStats:
    outcome_stats: list[OutcomeStat] = []
    for index, outcome in enumerate(market.outcomes):
        price = market.outcome_prices[index] if index < len(market.outcome_prices) else "0"
        probability = parse_with_fallback(
            parse_price, price, Decimal(0), field=f"outcomePrices[{index}]"
        ).value
        outcome_stats.append(
            OutcomeStat(
                outcome=outcome,
                outcome_index=index,
                user_count=0,
                percentage=float(probability * 100),
                price=price,
            )
        )
    return _build_stats(market, outcome_stats, 0, PriceDerived(reason=reason))


class StatsService:
    """Compute market statistics, preferring ledger data over prices."""

    def __init__(self, positions: PositionSource | None = None) -> None:
        self._positions = positions

    def compute_stats(self, market: Market) -> MarketStats:
        if self._positions is None:
            return stats_from_prices(market, LEDGER_DISABLED)
        if not market.condition_id:
            return stats_from_prices(market, NO_CONDITION_ID)

        try:
            positions = self._positions.fetch_positions(market.condition_id)
        except UpstreamError as exc:
            logger.warning(
                "Ledger unavailable for market {}; falling back to prices: {}",
                market.market_id,
                exc,
            )
            return stats_from_prices(market, LEDGER_UNAVAILABLE)

        stats = stats_from_ledger(market, aggregate_positions(positions))
        if stats is None:
            logger.info(
                "Ledger returned no bettors for market {}; using prices", market.market_id
            )
            return stats_from_prices(market, LEDGER_EMPTY)
        return stats

    def close(self) -> None:
        close_positions = getattr(self._positions, "close", None)
        if callable(close_positions):
            close_positions()


__all__ = [
    "LEDGER_DISABLED",
    "LEDGER_EMPTY",
    "LEDGER_UNAVAILABLE",
    "NO_CONDITION_ID",
    "PositionSource",
    "StatsService",
    "select_popular",
    "stats_from_ledger",
    "stats_from_prices",
]
