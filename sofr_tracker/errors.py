"""Exception hierarchy raised by the synchronisation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


class SofrTrackerError(RuntimeError):
    """Base class for pipeline failures surfaced to callers."""


class UpstreamUnavailable(SofrTrackerError):
    """Raised when an upstream API answers with a non-success status or cannot be reached."""

    def __init__(self, source: str, url: str, *, status_code: int | None = None) -> None:
        detail = f"HTTP {status_code}" if status_code is not None else "connection failed"
        super().__init__(f"{source} API error for {url}: {detail}")
        self.source = source
        self.url = url
        self.status_code = status_code


class PersistenceFailure(SofrTrackerError):
    """Raised when the relational store rejects an upsert batch."""

    def __init__(self, table: str, message: str) -> None:
        super().__init__(f"Failed to persist batch into {table}: {message}")
        self.table = table


class SyncInProgress(SofrTrackerError):
    """Raised when a pass is requested while another one is still running."""


@dataclass(frozen=True, slots=True)
class UpstreamParseAnomaly:
    """A malformed upstream value that was recovered as ``None``.

    Anomalies are collected and logged, never raised: a single bad token must
    not abort a fetch.
    """

    source: str
    field: str
    raw_value: object
    rate_date: date | None = None

    def __str__(self) -> str:
        where = f" on {self.rate_date.isoformat()}" if self.rate_date else ""
        return f"{self.source}: unparseable {self.field}={self.raw_value!r}{where}"


__all__ = [
    "SofrTrackerError",
    "UpstreamUnavailable",
    "PersistenceFailure",
    "SyncInProgress",
    "UpstreamParseAnomaly",
]
