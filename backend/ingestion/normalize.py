from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

from loguru import logger

from app.domain import Market

from .parsing import (
    parse_decimal_string,
    parse_end_date,
    parse_string_array,
    parse_with_fallback,
)


DEFAULT_EXPIRY_GRACE = timedelta(hours=24)


class NormalizationResult(NamedTuple):
    market: Market
    degraded_fields: tuple[str, ...]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


END_DATE_FIELDS = ("endDate", "endDateIso")


def _end_date(raw_market: dict[str, Any]) -> tuple[datetime | None, bool]:
    """Return the first end date that parses, and whether a present value was unusable."""

    degraded = False
    for name in END_DATE_FIELDS:
        result = parse_with_fallback(parse_end_date, raw_market.get(name), None, field=name)
        if result.value is not None:
            return result.value, False
        degraded = degraded or result.degraded
    return None, degraded


def normalize_market_report(raw_market: dict[str, Any]) -> NormalizationResult:
    """Normalize a catalog record and report which fields fell back to zero values."""

    degraded: list[str] = []

    def _field(name: str, parser, raw: Any, fallback: Any) -> Any:
        result = parse_with_fallback(parser, raw, fallback, field=name)
        if result.degraded:
            degraded.append(name)
        return result.value

    end_date, end_date_degraded = _end_date(raw_market)
    if end_date_degraded:
        degraded.append("endDate")

    market = Market(
        market_id=_as_text(raw_market.get("id")),
        condition_id=_as_text(raw_market.get("conditionId")),
        question=_as_text(raw_market.get("question")),
        description=_as_text(raw_market.get("description")),
        outcomes=_field("outcomes", parse_string_array, raw_market.get("outcomes"), ()),
        outcome_prices=_field(
            "outcomePrices", parse_string_array, raw_market.get("outcomePrices"), ()
        ),
        end_date=end_date,
        volume=_field("volume", parse_decimal_string, raw_market.get("volume"), "0"),
        liquidity=_field(
            "liquidity", parse_decimal_string, raw_market.get("liquidity"), "0"
        ),
        active=_as_bool(raw_market.get("active")) and not _as_bool(raw_market.get("closed")),
    )
    return NormalizationResult(market=market, degraded_fields=tuple(degraded))


def normalize_market(raw_market: dict[str, Any]) -> Market:
    result = normalize_market_report(raw_market)
    if result.degraded_fields:
        logger.debug(
            "Market {} normalized with degraded fields: {}",
            result.market.market_id or "<unknown>",
            ", ".join(result.degraded_fields),
        )
    return result.market


def is_expired(
    market: Market,
    *,
    now: datetime | None = None,
    grace: timedelta = DEFAULT_EXPIRY_GRACE,
) -> bool:
    """Return True when the market ended more than ``grace`` before ``now``.

    Markets without an end date are never considered expired.
    """

    if market.end_date is None:
        return False
    reference = now or datetime.now(timezone.utc)
    return market.end_date < reference - grace


def filter_expired(
    markets: Iterable[Market],
    *,
    now: datetime | None = None,
    grace: timedelta = DEFAULT_EXPIRY_GRACE,
) -> list[Market]:
    reference = now or datetime.now(timezone.utc)
    kept: list[Market] = []
    dropped = 0
    for market in markets:
        if is_expired(market, now=reference, grace=grace):
            dropped += 1
            continue
        kept.append(market)
    if dropped:
        logger.info("Dropped {} markets past the {} expiry grace window", dropped, grace)
    return kept
