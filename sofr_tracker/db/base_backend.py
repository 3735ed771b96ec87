"""Backend strategy interfaces for the persistence gateway."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Sequence

SERIES_TABLES: dict[str, str] = {
    "sofr": "sofr_rates",
    "effr": "effr_rates",
    "policy": "policy_rates",
    "rrp": "rrp_operations",
}
METADATA_TABLE = "sync_metadata"


@dataclass(slots=True)
class PersistenceResult:
    """Represents how many rows were inserted or updated in a batch."""

    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        """Return the total number of affected rows."""

        return self.inserted + self.updated


@dataclass(slots=True)
class MetadataEntry:
    value: str
    updated_at: datetime | None


class BackendStrategy(ABC):
    """Common interface implemented by every database backend."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create required tables and verify connectivity."""

    @abstractmethod
    def upsert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> PersistenceResult:
        """Insert or update ``rows`` keyed by ``date`` in one all-or-nothing batch."""

    @abstractmethod
    def write_metadata(self, entries: Mapping[str, str]) -> None:
        """Overwrite sync metadata values, stamping each with the current time."""

    @abstractmethod
    def read_metadata(self) -> dict[str, MetadataEntry]:
        """Return every sync metadata entry keyed by name."""

    @abstractmethod
    def fetch_range(
        self,
        table: str,
        start: date | None = None,
        end: date | None = None,
    ) -> list[dict[str, Any]]:
        """Return rows of ``table`` constrained by the provided dates, oldest first."""

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""


__all__ = [
    "BackendStrategy",
    "METADATA_TABLE",
    "MetadataEntry",
    "PersistenceResult",
    "SERIES_TABLES",
]
