"""Incremental sync and historical backfill passes."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator, Callable, Mapping

import httpx

from sofr_tracker.config import Settings
from sofr_tracker.db.base_backend import SERIES_TABLES, BackendStrategy
from sofr_tracker.errors import SyncInProgress
from sofr_tracker.ingestion.fred import PolicyRateAdapter
from sofr_tracker.ingestion.http import build_client
from sofr_tracker.ingestion.nyfed import EffrAdapter, SofrAdapter
from sofr_tracker.ingestion.repo_operations import RepoOperationAdapter
from sofr_tracker.ingestion.strategy import UpstreamAdapter
from sofr_tracker.utils.date_range import DateRange, explicit_window, lookback_window
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)

LAST_SYNC = "last_sync"
LAST_SYNC_END_DATE = "last_sync_end_date"
BACKFILL_START = "backfill_start"
BACKFILL_END = "backfill_end"
BACKFILL_COMPLETED = "backfill_completed"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class SyncResult:
    """Outcome of one successful sync or backfill pass."""

    per_series_row_counts: dict[str, int] = field(default_factory=dict)
    start_date: date | None = None
    end_date: date | None = None
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON shape served by the sync/backfill endpoints."""

        payload: dict[str, Any] = dict(self.per_series_row_counts)
        payload.update(
            {
                "startDate": self.start_date.isoformat() if self.start_date else None,
                "endDate": self.end_date.isoformat() if self.end_date else None,
                "duration": self.duration_ms,
            }
        )
        return payload


class SyncOrchestrator:
    """Drives one pass: concurrent fetches, keyed upserts, then metadata.

    ``adapters`` replaces the default upstream adapters (keys must be series
    names from :data:`SERIES_TABLES`); ``transport`` is handed to the default
    HTTP client instead. ``clock`` supplies the current UTC time used for the
    lookback window and the metadata timestamps.
    """

    def __init__(
        self,
        backend: BackendStrategy,
        settings: Settings | None = None,
        *,
        adapters: Mapping[str, UpstreamAdapter] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if adapters is not None:
            unknown = set(adapters) - set(SERIES_TABLES)
            if unknown:
                raise ValueError(f"Unknown series: {sorted(unknown)}")
        self.backend = backend
        self.settings = settings or Settings()
        self._adapters = dict(adapters) if adapters is not None else None
        self._transport = transport
        self._clock = clock
        self._active_runs = 0
        self._write_lock: asyncio.Lock | None = None

    @property
    def running(self) -> bool:
        return self._active_runs > 0

    def today(self) -> date:
        """Return the current UTC calendar day used for default window bounds."""

        return self._clock().date()

    async def run_sync(self, lookback_days: int | None = None) -> SyncResult:
        """Sync ``[today - lookback_days, today]`` and record ``last_sync`` metadata."""

        days = self.settings.lookback_days if lookback_days is None else lookback_days
        window = lookback_window(days, today=self.today())
        return await self._run(
            "Sync",
            window,
            lambda finished: {
                LAST_SYNC: finished.isoformat(),
                LAST_SYNC_END_DATE: window.end.isoformat(),
            },
        )

    async def backfill(
        self, start_date: str | date, end_date: str | date | None = None
    ) -> SyncResult:
        """Sync an explicit historical window and record ``backfill_*`` metadata.

        ``end_date`` defaults to :meth:`today`.
        """

        window = explicit_window(start_date, self.today() if end_date is None else end_date)
        return await self._run(
            "Backfill",
            window,
            lambda finished: {
                BACKFILL_START: window.start.isoformat(),
                BACKFILL_END: window.end.isoformat(),
                BACKFILL_COMPLETED: finished.isoformat(),
            },
        )

    async def _run(
        self,
        label: str,
        window: DateRange,
        metadata_for: Callable[[datetime], dict[str, str]],
    ) -> SyncResult:
        if self.settings.single_flight and self.running:
            raise SyncInProgress(f"{label} requested while another pass is running")
        if not self.running:
            # Created per pass: callers may drive passes from separate event loops.
            self._write_lock = asyncio.Lock()
        self._active_runs += 1
        started = time.perf_counter()
        LOGGER.info(
            "Starting %s: %s to %s (%s days)", label.lower(), window.start, window.end, window.days
        )
        try:
            async with self._open_adapters() as adapters:
                counts = await self._sync_all(adapters, window)
            await self._persist(self.backend.write_metadata, metadata_for(self._clock()))
        finally:
            self._active_runs -= 1
        duration_ms = round((time.perf_counter() - started) * 1000)
        LOGGER.info(
            "%s complete: %s (%sms)",
            label,
            ", ".join(f"{name.upper()}={count}" for name, count in counts.items()),
            duration_ms,
        )
        return SyncResult(
            per_series_row_counts=counts,
            start_date=window.start,
            end_date=window.end,
            duration_ms=duration_ms,
        )

    @asynccontextmanager
    async def _open_adapters(self) -> AsyncIterator[dict[str, UpstreamAdapter]]:
        if self._adapters is not None:
            yield self._adapters
            return
        settings = self.settings
        async with build_client(timeout=settings.http_timeout, transport=self._transport) as client:
            yield {
                "sofr": SofrAdapter(
                    client, base_url=settings.nyfed_base_url, policy=settings.missing_rate_policy
                ),
                "effr": EffrAdapter(
                    client, base_url=settings.nyfed_base_url, policy=settings.missing_rate_policy
                ),
                "policy": PolicyRateAdapter(client, base_url=settings.fred_base_url),
                "rrp": RepoOperationAdapter(client, base_url=settings.nyfed_base_url),
            }

    async def _sync_all(
        self, adapters: Mapping[str, UpstreamAdapter], window: DateRange
    ) -> dict[str, int]:
        names = list(adapters)
        # Every series settles before a failure is raised, so whatever was already
        # upserted stays committed and a rerun of the same window is safe.
        outcomes = await asyncio.gather(
            *(self._sync_series(name, adapters[name], window) for name in names),
            return_exceptions=True,
        )
        failures = [
            (name, outcome)
            for name, outcome in zip(names, outcomes)
            if isinstance(outcome, BaseException)
        ]
        if failures:
            for name, exc in failures:
                LOGGER.error("Series %s failed: %s", name, exc)
            raise failures[0][1]
        return {name: int(count) for name, count in zip(names, outcomes)}

    async def _sync_series(self, name: str, adapter: UpstreamAdapter, window: DateRange) -> int:
        rows = await adapter.fetch(window.start, window.end)
        if not rows:
            return 0
        result = await self._persist(
            self.backend.upsert, SERIES_TABLES[name], [row.as_row() for row in rows]
        )
        return result.total

    async def _persist(self, write: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking backend write in a worker thread so other series keep fetching."""

        # Writes leave the event loop but still reach the store one batch at a time.
        assert self._write_lock is not None
        async with self._write_lock:
            return await asyncio.to_thread(write, *args)


__all__ = [
    "BACKFILL_COMPLETED",
    "BACKFILL_END",
    "BACKFILL_START",
    "LAST_SYNC",
    "LAST_SYNC_END_DATE",
    "SyncOrchestrator",
    "SyncResult",
]
