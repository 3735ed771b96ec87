"""NY Fed Markets API adapters for the SOFR and EFFR reference rates."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Mapping, Sequence

import httpx

from sofr_tracker.config import NYFED_BASE_URL, MissingRatePolicy
from sofr_tracker.ingestion.http import get_json
from sofr_tracker.ingestion.models import EffrObservation, ParseResult, RateObservation
from sofr_tracker.ingestion.parsing import FieldParser, first_present, is_missing, to_billions
from sofr_tracker.utils.date_range import DateRange
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)

RateSeries = Literal["SOFR", "EFFR"]

RATE_PATHS: dict[RateSeries, str] = {
    "SOFR": "/api/rates/secured/sofr/search.json",
    "EFFR": "/api/rates/unsecured/effr/search.json",
}

# Upstream revisions have published the headline rate under different names.
PRIMARY_RATE_KEYS = (
    "percentRate",
    "percentile50",
    "medianRate",
    "volumeWeightedMedian",
    "averageRate",
)
DATE_KEYS = ("effectiveDate", "date", "observationDate")
TARGET_LOW_KEYS = ("targetRateFrom", "targetRateLow")
TARGET_HIGH_KEYS = ("targetRateTo", "targetRateHigh")


def _extract_observations(payload: Any) -> list[Mapping[str, Any]]:
    """Locate the observation list across the known payload shapes."""

    if isinstance(payload, list):
        candidates = payload
    elif isinstance(payload, Mapping):
        candidates = payload.get("refRates")
        if candidates is None and isinstance(payload.get("data"), Mapping):
            candidates = payload["data"].get("refRates")
    else:
        candidates = None
    if not isinstance(candidates, list):
        return []
    return [item for item in candidates if isinstance(item, Mapping)]


def _volume_billions(obs: Mapping[str, Any], parser: FieldParser, rate_date: date) -> float | None:
    if not is_missing(obs.get("volumeInBillions")):
        return parser.decimal(obs.get("volumeInBillions"), "volumeInBillions", rate_date)
    return to_billions(parser.decimal(obs.get("tradingVolume"), "tradingVolume", rate_date))


def parse_rate_payload(
    payload: Any,
    series: RateSeries,
    *,
    policy: MissingRatePolicy = MissingRatePolicy.ZERO,
) -> ParseResult:
    """Normalise a reference-rate payload into observations.

    Auxiliary fields (percentiles, volume, target range) become ``None`` when
    absent. The primary rate follows ``policy`` when it is absent. Records
    without a usable date are dropped and reported as anomalies.
    """

    parser = FieldParser(source=series)
    rows: list[RateObservation] = []
    for obs in _extract_observations(payload):
        rate_date = parser.day(first_present(obs, DATE_KEYS), "effectiveDate")
        if rate_date is None:
            continue
        primary = parser.decimal(first_present(obs, PRIMARY_RATE_KEYS), "percentRate", rate_date)
        fields: dict[str, Any] = {
            "rate_date": rate_date,
            "rate": policy.apply(primary),
            "p1": parser.decimal(obs.get("percentile1"), "percentile1", rate_date),
            "p25": parser.decimal(obs.get("percentile25"), "percentile25", rate_date),
            "p75": parser.decimal(obs.get("percentile75"), "percentile75", rate_date),
            "p99": parser.decimal(obs.get("percentile99"), "percentile99", rate_date),
            "volume_billions": _volume_billions(obs, parser, rate_date),
        }
        if series == "EFFR":
            record: RateObservation = EffrObservation(
                **fields,
                target_low=parser.decimal(
                    first_present(obs, TARGET_LOW_KEYS), "targetRateFrom", rate_date
                ),
                target_high=parser.decimal(
                    first_present(obs, TARGET_HIGH_KEYS), "targetRateTo", rate_date
                ),
            )
        else:
            record = RateObservation(**fields)
        if not record.percentiles_ordered:
            LOGGER.debug("%s percentiles out of order on %s; keeping as published", series, rate_date)
        rows.append(record)
    return ParseResult(source=series, rows=rows, anomalies=parser.anomalies)


class RateObservationAdapter:
    """Fetches one NY Fed reference rate for a date window."""

    def __init__(
        self,
        series: RateSeries,
        client: httpx.AsyncClient,
        *,
        base_url: str = NYFED_BASE_URL,
        policy: MissingRatePolicy = MissingRatePolicy.ZERO,
    ) -> None:
        if series not in RATE_PATHS:
            raise ValueError(f"Unsupported reference rate: {series}")
        self.series = series
        self.name = series.lower()
        self.client = client
        self.url = base_url.rstrip("/") + RATE_PATHS[series]
        self.policy = policy

    async def fetch(self, start_date: date, end_date: date) -> Sequence[RateObservation]:
        window = DateRange(start=start_date, end=end_date)
        payload = await get_json(self.client, f"NY Fed {self.series}", self.url, window.as_params())
        result = parse_rate_payload(payload, self.series, policy=self.policy)
        for anomaly in result.anomalies:
            LOGGER.warning("Tolerated parse anomaly: %s", anomaly)
        LOGGER.info(
            "Fetched %s %s observations for %s → %s",
            len(result.rows),
            self.series,
            start_date,
            end_date,
        )
        return result.rows


class SofrAdapter(RateObservationAdapter):
    def __init__(self, client: httpx.AsyncClient, **kwargs: Any) -> None:
        super().__init__("SOFR", client, **kwargs)


class EffrAdapter(RateObservationAdapter):
    def __init__(self, client: httpx.AsyncClient, **kwargs: Any) -> None:
        super().__init__("EFFR", client, **kwargs)


__all__ = [
    "PRIMARY_RATE_KEYS",
    "RATE_PATHS",
    "EffrAdapter",
    "RateObservationAdapter",
    "SofrAdapter",
    "parse_rate_payload",
]
