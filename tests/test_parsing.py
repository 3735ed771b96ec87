from __future__ import annotations

import math
from datetime import date

import pytest

from sofr_tracker.ingestion.parsing import FieldParser, first_present, is_missing, parse_decimal, to_billions


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("5.31", 5.31),
        (" 5.31 ", 5.31),
        ("5.31%", 5.31),
        ("1,750", 1750.0),
        (5, 5.0),
        (5.33, 5.33),
        ("-0.02", -0.02),
    ],
)
def test_parse_decimal_accepts_numeric_tokens(raw: object, expected: float) -> None:
    assert parse_decimal(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", ".", "NA", "N/A", "null", "abc", True, math.nan, "inf"])
def test_parse_decimal_returns_none_for_missing_or_garbage(raw: object) -> None:
    assert parse_decimal(raw) is None


def test_is_missing_recognises_sentinels() -> None:
    assert is_missing(".")
    assert is_missing("  ")
    assert is_missing(float("nan"))
    assert not is_missing("0")
    assert not is_missing(0)


def test_to_billions_scales_raw_amounts() -> None:
    assert to_billions(5_000_000_000) == 5.0
    assert to_billions(None) is None


def test_first_present_skips_missing_values() -> None:
    payload = {"percentRate": ".", "percentile50": "5.31", "medianRate": "5.30"}

    assert first_present(payload, ("percentRate", "percentile50", "medianRate")) == "5.31"
    assert first_present(payload, ("unknown",)) is None


def test_field_parser_records_only_unparseable_values() -> None:
    parser = FieldParser(source="NY Fed SOFR")

    assert parser.decimal("bad", "percentile1", date(2024, 1, 2)) is None
    assert parser.decimal(".", "percentile25") is None
    assert parser.decimal("5.31", "percentRate") == 5.31

    assert len(parser.anomalies) == 1
    anomaly = parser.anomalies[0]
    assert anomaly.field == "percentile1"
    assert str(anomaly) == "NY Fed SOFR: unparseable percentile1='bad' on 2024-01-02"


def test_field_parser_integer_and_day() -> None:
    parser = FieldParser(source="NY Fed RRP")

    assert parser.integer("90", "counterpartyCount") == 90
    assert parser.integer("12.0", "counterpartyCount") == 12
    assert parser.day("2024-01-02T00:00:00") == date(2024, 1, 2)
    assert parser.day("01/02/2024") is None
    assert parser.day(None, "operationDate") is None

    assert [anomaly.field for anomaly in parser.anomalies] == ["date", "operationDate"]
