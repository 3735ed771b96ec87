"""FRED CSV adapter for the administered policy rates (IORB, SRF, RRP)."""

from __future__ import annotations

import asyncio
import io
from datetime import date
from typing import Sequence

import httpx
import pandas as pd

from sofr_tracker.config import FRED_BASE_URL
from sofr_tracker.ingestion.http import get_text
from sofr_tracker.ingestion.models import ParseResult, PolicyRateRow, SeriesPoint
from sofr_tracker.ingestion.parsing import FieldParser, is_missing
from sofr_tracker.ingestion.reconciler import reconcile_policy_rates
from sofr_tracker.utils.date_range import DateRange
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)

# Row attribute on PolicyRateRow -> FRED series identifier.
POLICY_SERIES: dict[str, str] = {
    "iorb": "IORB",
    "srf": "SRFTSYD",
    "rrp": "RRPONTSYAWARD",
}


def parse_fred_csv(csv_text: str, series_id: str) -> ParseResult:
    """Parse ``fredgraph.csv`` output into :class:`SeriesPoint` rows.

    The header line is skipped. FRED marks missing observations with ``.``;
    those and empty cells become ``None``. Any other unparseable value also
    becomes ``None`` and is reported as an anomaly. Lines without a date are
    dropped.
    """

    parser = FieldParser(source=f"FRED {series_id}")
    if not csv_text.strip():
        return ParseResult(source=series_id)

    frame = pd.read_csv(
        io.StringIO(csv_text.strip()),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
        on_bad_lines=lambda fields: fields[:2],
    )
    if frame.empty:
        return ParseResult(source=series_id, anomalies=parser.anomalies)

    raw_dates = frame.iloc[:, 0].str.strip()
    raw_values = (
        frame.iloc[:, 1].str.strip() if frame.shape[1] > 1 else pd.Series([""] * len(frame))
    )
    numeric = pd.to_numeric(raw_values, errors="coerce")

    points: list[SeriesPoint] = []
    for raw_date, raw_value, number in zip(raw_dates, raw_values, numeric):
        if not raw_date:
            continue
        rate_date = parser.day(raw_date)
        if rate_date is None:
            continue
        value = None if pd.isna(number) else float(number)
        if value is None and not is_missing(raw_value):
            value = parser.decimal(raw_value, series_id, rate_date)
        points.append(SeriesPoint(rate_date=rate_date, value=value))
    return ParseResult(source=series_id, rows=points, anomalies=parser.anomalies)


class PolicyRateAdapter:
    """Fetches the three policy-rate series concurrently and merges them by date."""

    name = "policy"

    def __init__(self, client: httpx.AsyncClient, *, base_url: str = FRED_BASE_URL) -> None:
        self.client = client
        self.base_url = base_url

    async def fetch_series(self, series_id: str, start_date: date, end_date: date) -> list[SeriesPoint]:
        params = {
            "id": series_id,
            "cosd": start_date.isoformat(),
            "coed": end_date.isoformat(),
        }
        csv_text = await get_text(self.client, f"FRED {series_id}", self.base_url, params)
        result = parse_fred_csv(csv_text, series_id)
        for anomaly in result.anomalies:
            LOGGER.warning("Tolerated parse anomaly: %s", anomaly)
        window = DateRange(start=start_date, end=end_date)
        return [point for point in result.rows if point.rate_date in window]

    async def fetch(self, start_date: date, end_date: date) -> Sequence[PolicyRateRow]:
        fetched = await asyncio.gather(
            *(self.fetch_series(series_id, start_date, end_date) for series_id in POLICY_SERIES.values())
        )
        rows = reconcile_policy_rates(**dict(zip(POLICY_SERIES, fetched)))
        LOGGER.info(
            "Fetched %s policy rate rows for %s → %s (%s)",
            len(rows),
            start_date,
            end_date,
            ", ".join(f"{sid}={len(points)}" for sid, points in zip(POLICY_SERIES.values(), fetched)),
        )
        return rows


__all__ = ["POLICY_SERIES", "PolicyRateAdapter", "parse_fred_csv"]
