"""NY Fed reverse repo operation results adapter.

The upstream payload has changed shape across API revisions. Every known
revision is described by a :class:`RepoSchema`; :func:`detect_schema` picks the
one matching a payload and :func:`parse_repo_payload` normalises operations
through it, so a new revision only needs a new schema entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Sequence

import httpx

from sofr_tracker.config import NYFED_BASE_URL
from sofr_tracker.ingestion.http import get_json
from sofr_tracker.ingestion.models import ParseResult, RepoOperationRow
from sofr_tracker.ingestion.parsing import FieldParser, first_present, to_billions
from sofr_tracker.utils.date_range import DateRange
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)

RRP_PATH = "/api/rp/reverserepo/all/results/search.json"

MMF_TYPES = frozenset({"money market fund", "money market funds", "mmf"})
GSE_TYPES = frozenset(
    {"gse", "gses", "government-sponsored enterprise", "government sponsored enterprise"}
)


@dataclass(frozen=True, slots=True)
class RepoSchema:
    """Field layout of one upstream revision."""

    name: str
    container_path: tuple[str, ...]
    date_keys: tuple[str, ...]
    total_keys: tuple[str, ...]
    count_keys: tuple[str, ...]
    breakdown_key: str
    type_keys: tuple[str, ...]
    amount_keys: tuple[str, ...]


KNOWN_SCHEMAS: tuple[RepoSchema, ...] = (
    RepoSchema(
        name="repo-operations-results",
        container_path=("repoOperations", "results"),
        date_keys=("operationDate",),
        total_keys=("totalAmtAccepted",),
        count_keys=("totalCounterpartyCount",),
        breakdown_key="submittedParticipantsByType",
        type_keys=("participantType",),
        amount_keys=("totalAmtAccepted",),
    ),
    RepoSchema(
        name="repo-operations",
        container_path=("repo", "operations"),
        date_keys=("operationDate",),
        total_keys=("totalAmtAccepted",),
        count_keys=("acceptedCpty", "participatingCpty"),
        breakdown_key="participantsByType",
        type_keys=("counterpartyType", "participantType"),
        amount_keys=("amtAccepted", "totalAmtAccepted"),
    ),
    RepoSchema(
        name="flat-operations",
        container_path=("operations",),
        date_keys=("date", "operationDate"),
        total_keys=("acceptedAmount", "totalAmtAccepted"),
        count_keys=("counterpartyCount",),
        breakdown_key="counterparties",
        type_keys=("type", "counterpartyType"),
        amount_keys=("acceptedAmount", "amtAccepted"),
    ),
)


def _resolve(payload: Any, path: tuple[str, ...]) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def detect_schema(payload: Any) -> RepoSchema | None:
    """Return the first known schema whose operation list exists in ``payload``."""

    for schema in KNOWN_SCHEMAS:
        if isinstance(_resolve(payload, schema.container_path), list):
            return schema
    return None


def _subtotal(
    breakdown: Sequence[Mapping[str, Any]],
    wanted: frozenset[str],
    schema: RepoSchema,
    parser: FieldParser,
    operation_date: date,
) -> float | None:
    amounts = [
        parser.decimal(first_present(entry, schema.amount_keys), "amtAccepted", operation_date)
        for entry in breakdown
        if str(first_present(entry, schema.type_keys) or "").strip().lower() in wanted
    ]
    present = [amount for amount in amounts if amount is not None]
    if not present:
        return None
    return to_billions(sum(present))


def _normalise_operation(
    operation: Mapping[str, Any], schema: RepoSchema, parser: FieldParser
) -> RepoOperationRow | None:
    operation_date = parser.day(first_present(operation, schema.date_keys), "operationDate")
    if operation_date is None:
        return None
    total = parser.decimal(first_present(operation, schema.total_keys), "totalAmtAccepted", operation_date)
    raw_breakdown = operation.get(schema.breakdown_key)
    if isinstance(raw_breakdown, list):
        breakdown = [entry for entry in raw_breakdown if isinstance(entry, Mapping)]
        positive = 0
        for entry in breakdown:
            amount = parser.decimal(first_present(entry, schema.amount_keys), "amtAccepted", operation_date)
            if amount is not None and amount > 0:
                positive += 1
        counterparties: int | None = positive
        mmf = _subtotal(breakdown, MMF_TYPES, schema, parser, operation_date)
        gse = _subtotal(breakdown, GSE_TYPES, schema, parser, operation_date)
    else:
        counterparties = parser.integer(
            first_present(operation, schema.count_keys), "counterpartyCount", operation_date
        )
        mmf = gse = None
    return RepoOperationRow(
        operation_date=operation_date,
        total_accepted_billions=to_billions(total),
        participating_counterparties=counterparties,
        mmf_accepted_billions=mmf,
        gse_accepted_billions=gse,
    )


def parse_repo_payload(payload: Any) -> ParseResult:
    """Normalise a reverse repo results payload into :class:`RepoOperationRow` rows."""

    parser = FieldParser(source="NY Fed RRP")
    schema = detect_schema(payload)
    if schema is None:
        LOGGER.warning("Unrecognised reverse repo payload shape; no operations parsed")
        return ParseResult(source="RRP", anomalies=parser.anomalies)
    rows: list[RepoOperationRow] = []
    for operation in _resolve(payload, schema.container_path):
        if not isinstance(operation, Mapping):
            continue
        row = _normalise_operation(operation, schema, parser)
        if row is not None:
            rows.append(row)
    return ParseResult(source="RRP", rows=rows, anomalies=parser.anomalies)


class RepoOperationAdapter:
    """Fetches overnight reverse repo operation results for a date window."""

    name = "rrp"

    def __init__(self, client: httpx.AsyncClient, *, base_url: str = NYFED_BASE_URL) -> None:
        self.client = client
        self.url = base_url.rstrip("/") + RRP_PATH

    async def fetch(self, start_date: date, end_date: date) -> Sequence[RepoOperationRow]:
        window = DateRange(start=start_date, end=end_date)
        payload = await get_json(self.client, "NY Fed RRP", self.url, window.as_params())
        result = parse_repo_payload(payload)
        for anomaly in result.anomalies:
            LOGGER.warning("Tolerated parse anomaly: %s", anomaly)
        LOGGER.info("Fetched %s RRP operations for %s → %s", len(result.rows), start_date, end_date)
        return result.rows


__all__ = [
    "KNOWN_SCHEMAS",
    "RRP_PATH",
    "RepoOperationAdapter",
    "RepoSchema",
    "detect_schema",
    "parse_repo_payload",
]
