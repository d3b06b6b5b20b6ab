"""Group ledger positions into distinct-bettor counts per outcome."""

from __future__ import annotations

from collections.abc import Iterable

from app.domain import LedgerAggregate, LedgerPosition


def aggregate_positions(positions: Iterable[LedgerPosition]) -> LedgerAggregate:
    aggregate = LedgerAggregate()
    for position in positions:
        if not position.user_id:
            continue
        aggregate.by_outcome.setdefault(position.outcome, set()).add(position.user_id)
        aggregate.users.add(position.user_id)
    return aggregate


__all__ = ["aggregate_positions"]
