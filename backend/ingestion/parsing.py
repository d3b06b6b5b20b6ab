"""Field-level parsers that degrade to a fallback instead of raising."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, NamedTuple, TypeVar

from dateutil import parser as date_parser
from loguru import logger

T = TypeVar("T")


class ParseResult(NamedTuple):
    value: Any
    degraded: bool


def parse_with_fallback(
    parser: Callable[[Any], T],
    raw: Any,
    fallback: T,
    *,
    field: str,
) -> ParseResult:
    """Run ``parser`` on ``raw`` and return ``fallback`` when it raises.

    Missing values (``None`` or ``""``) yield the fallback without being
    counted as a degradation.
    """

    if raw is None or raw == "":
        return ParseResult(fallback, False)
    try:
        return ParseResult(parser(raw), False)
    except (TypeError, ValueError, ArithmeticError) as exc:
        logger.debug("Degraded field {} ({!r}): {}", field, raw, exc)
        return ParseResult(fallback, True)


def parse_string_array(value: Any) -> tuple[str, ...]:
    """Decode a JSON array that upstream serialized into a string."""

    decoded = json.loads(value) if isinstance(value, (str, bytes)) else value
    if not isinstance(decoded, list):
        raise ValueError(f"expected a JSON array, got {type(decoded).__name__}")
    return tuple(str(item) for item in decoded)


def _parse_aware_timestamp(value: str) -> datetime:
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        raise ValueError("timestamp carries no timezone")
    return parsed


def _parse_date_only(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%d")


def _parse_naive_timestamp(value: str) -> datetime:
    for fmt in ("%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S.%f", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"no naive timestamp format matched {value!r}")


# Tried in order; the first that succeeds wins.
END_DATE_PARSERS: tuple[Callable[[str], datetime], ...] = (
    _parse_aware_timestamp,
    _parse_date_only,
    _parse_naive_timestamp,
)


def parse_end_date(value: Any) -> datetime:
    text = str(value).strip()
    for candidate in END_DATE_PARSERS:
        try:
            parsed = candidate(text)
        except (ValueError, OverflowError):
            continue
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    raise ValueError(f"unrecognized end date {text!r}")


def parse_decimal_string(value: Any) -> str:
    """Return ``value`` as a decimal string, preserving upstream spelling."""

    if isinstance(value, bool):
        raise TypeError("booleans are not decimal amounts")
    text = str(value).strip()
    decimal_value = Decimal(text)
    if not decimal_value.is_finite():
        raise ValueError(f"non-finite decimal {text!r}")
    return text


def parse_price(value: Any) -> Decimal:
    decimal_value = Decimal(str(value).strip())
    if not decimal_value.is_finite():
        raise ValueError(f"non-finite price {value!r}")
    return decimal_value


__all__ = [
    "END_DATE_PARSERS",
    "ParseResult",
    "parse_decimal_string",
    "parse_end_date",
    "parse_price",
    "parse_string_array",
    "parse_with_fallback",
]
