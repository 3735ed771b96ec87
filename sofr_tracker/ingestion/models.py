"""Data models shared across ingestion modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sofr_tracker.errors import UpstreamParseAnomaly


@dataclass(slots=True)
class RateObservation:
    """One published day of a secured overnight rate (SOFR)."""

    rate_date: date
    rate: float | None
    p1: float | None = None
    p25: float | None = None
    p75: float | None = None
    p99: float | None = None
    volume_billions: float | None = None

    def as_row(self) -> dict[str, Any]:
        return {
            "date": self.rate_date,
            "rate": self.rate,
            "p1": self.p1,
            "p25": self.p25,
            "p75": self.p75,
            "p99": self.p99,
            "volume_billions": self.volume_billions,
        }

    @property
    def percentiles_ordered(self) -> bool:
        """Return False when present percentiles are not non-decreasing."""

        present = [value for value in (self.p1, self.p25, self.p75, self.p99) if value is not None]
        return all(low <= high for low, high in zip(present, present[1:]))


@dataclass(slots=True)
class EffrObservation(RateObservation):
    """Unsecured overnight rate observation carrying the FOMC target range."""

    target_low: float | None = None
    target_high: float | None = None

    def as_row(self) -> dict[str, Any]:
        row = RateObservation.as_row(self)
        row["target_low"] = self.target_low
        row["target_high"] = self.target_high
        return row


@dataclass(slots=True)
class SeriesPoint:
    """Single ``date,value`` observation from a FRED series."""

    rate_date: date
    value: float | None


@dataclass(slots=True)
class PolicyRateRow:
    """Administered policy rates for one day (corridor ceiling/floor plus IORB)."""

    rate_date: date
    iorb: float | None = None
    srf: float | None = None
    rrp: float | None = None

    def as_row(self) -> dict[str, Any]:
        return {"date": self.rate_date, "iorb": self.iorb, "srf": self.srf, "rrp": self.rrp}


@dataclass(slots=True)
class RepoOperationRow:
    """Daily overnight reverse repo operation totals, in billions."""

    operation_date: date
    total_accepted_billions: float | None = None
    participating_counterparties: int | None = None
    mmf_accepted_billions: float | None = None
    gse_accepted_billions: float | None = None

    def as_row(self) -> dict[str, Any]:
        return {
            "date": self.operation_date,
            "total_accepted_billions": self.total_accepted_billions,
            "participating_counterparties": self.participating_counterparties,
            "mmf_accepted_billions": self.mmf_accepted_billions,
            "gse_accepted_billions": self.gse_accepted_billions,
        }


@dataclass(slots=True)
class ParseResult:
    """Rows parsed from one upstream payload plus the anomalies tolerated on the way."""

    source: str
    rows: list[Any] = field(default_factory=list)
    anomalies: list[UpstreamParseAnomaly] = field(default_factory=list)


__all__ = [
    "RateObservation",
    "EffrObservation",
    "SeriesPoint",
    "PolicyRateRow",
    "RepoOperationRow",
    "ParseResult",
]
