from __future__ import annotations

from decimal import Decimal

import pytest

from ingestion.parsing import (
    ParseResult,
    parse_decimal_string,
    parse_price,
    parse_string_array,
    parse_with_fallback,
)


def test_parse_with_fallback_returns_parsed_value():
    assert parse_with_fallback(int, "12", 0, field="n") == ParseResult(12, False)


def test_parse_with_fallback_flags_degradation():
    assert parse_with_fallback(int, "twelve", 0, field="n") == ParseResult(0, True)


@pytest.mark.parametrize("raw", [None, ""])
def test_missing_values_are_not_degradations(raw):
    assert parse_with_fallback(int, raw, -1, field="n") == ParseResult(-1, False)


def test_parse_string_array_coerces_items():
    assert parse_string_array('["Yes", 2, 0.5]') == ("Yes", "2", "0.5")


def test_parse_string_array_rejects_objects():
    with pytest.raises(ValueError):
        parse_string_array('{"outcomes": ["Yes"]}')


@pytest.mark.parametrize("raw", ["NaN", "Infinity", True])
def test_parse_decimal_string_rejects_non_amounts(raw):
    result = parse_with_fallback(parse_decimal_string, raw, "0", field="volume")
    assert result == ParseResult("0", True)


def test_parse_decimal_string_preserves_spelling():
    assert parse_decimal_string("1000.500") == "1000.500"


def test_parse_price_is_exact():
    assert parse_price("0.3") * 100 == Decimal("30.0")
    assert float(parse_price(" 0.7 ") * 100) == 70.0
