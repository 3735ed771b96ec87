"""Tolerant field parsing shared by the upstream adapters."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

from sofr_tracker.errors import UpstreamParseAnomaly
from sofr_tracker.utils.date_range import parse_date

MISSING_SENTINELS = frozenset({"", ".", "NA", "N/A", "null", "None"})
BILLION = 1_000_000_000


def is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() in MISSING_SENTINELS


def parse_decimal(value: object) -> float | None:
    """Return ``value`` as a float, or ``None`` when it is missing or unparseable."""

    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = re.sub(r"[,%\s]", "", str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_billions(value: float | None) -> float | None:
    if value is None:
        return None
    return value / BILLION


def first_present(payload: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Return the first non-missing value among ``keys``."""

    for key in keys:
        value = payload.get(key)
        if not is_missing(value):
            return value
    return None


@dataclass(slots=True)
class FieldParser:
    """Parses fields for one upstream source and records anomalies instead of raising."""

    source: str
    anomalies: list[UpstreamParseAnomaly] = field(default_factory=list)

    def decimal(self, value: object, field_name: str, rate_date: date | None = None) -> float | None:
        parsed = parse_decimal(value)
        if parsed is None and not is_missing(value):
            self._record(field_name, value, rate_date)
        return parsed

    def integer(self, value: object, field_name: str, rate_date: date | None = None) -> int | None:
        parsed = self.decimal(value, field_name, rate_date)
        return None if parsed is None else int(parsed)

    def day(self, value: object, field_name: str = "date") -> date | None:
        if is_missing(value):
            self._record(field_name, value, None)
            return None
        try:
            return parse_date(str(value)[:10])
        except ValueError:
            self._record(field_name, value, None)
            return None

    def _record(self, field_name: str, value: object, rate_date: date | None) -> None:
        self.anomalies.append(
            UpstreamParseAnomaly(
                source=self.source, field=field_name, raw_value=value, rate_date=rate_date
            )
        )


__all__ = [
    "BILLION",
    "MISSING_SENTINELS",
    "FieldParser",
    "first_present",
    "is_missing",
    "parse_decimal",
    "to_billions",
]
