"""SQLAlchemy powered persistence gateway shared by every SQL backend."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Iterable, Literal, Mapping, Sequence

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    func,
    insert,
    select,
)
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgres_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from sofr_tracker.db.base_backend import (
    METADATA_TABLE,
    BackendStrategy,
    MetadataEntry,
    PersistenceResult,
    SERIES_TABLES,
)
from sofr_tracker.errors import PersistenceFailure
from sofr_tracker.utils.logger import get_logger

LOGGER = get_logger(__name__)

SCHEMA = MetaData()


def _percentile_columns() -> list[Column]:
    return [Column(name, Float, nullable=True) for name in ("p1", "p25", "p75", "p99")]


SOFR_RATES = Table(
    "sofr_rates",
    SCHEMA,
    Column("date", Date, primary_key=True),
    Column("rate", Float, nullable=True),
    *_percentile_columns(),
    Column("volume_billions", Float, nullable=True),
)

EFFR_RATES = Table(
    "effr_rates",
    SCHEMA,
    Column("date", Date, primary_key=True),
    Column("rate", Float, nullable=True),
    *_percentile_columns(),
    Column("target_low", Float, nullable=True),
    Column("target_high", Float, nullable=True),
    Column("volume_billions", Float, nullable=True),
)

POLICY_RATES = Table(
    "policy_rates",
    SCHEMA,
    Column("date", Date, primary_key=True),
    Column("iorb", Float, nullable=True),
    Column("srf", Float, nullable=True),
    Column("rrp", Float, nullable=True),
)

RRP_OPERATIONS = Table(
    "rrp_operations",
    SCHEMA,
    Column("date", Date, primary_key=True),
    Column("total_accepted_billions", Float, nullable=True),
    Column("participating_counterparties", Integer, nullable=True),
    Column("mmf_accepted_billions", Float, nullable=True),
    Column("gse_accepted_billions", Float, nullable=True),
)

SYNC_METADATA = Table(
    METADATA_TABLE,
    SCHEMA,
    Column("key", String(64), primary_key=True),
    Column("value", String(255), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

TABLES: dict[str, Table] = {table.name: table for table in SCHEMA.sorted_tables}

SpreadKind = Literal["sofr-percentile", "sofr-rrp", "effr-rrp"]
SPREAD_KINDS: tuple[str, ...] = ("sofr-percentile", "sofr-rrp", "effr-rrp")

# Keeps ``IN (...)`` lookups under SQLite's bound-parameter limit on large backfills.
_KEY_LOOKUP_CHUNK = 500


def _dedupe_by_key(rows: Sequence[Mapping[str, Any]], table: Table) -> list[dict[str, Any]]:
    """Complete every row with all columns and keep the last row per primary key."""

    key_name = _key_column(table).name
    column_names = [column.name for column in table.columns]
    unique: dict[Any, dict[str, Any]] = {}
    for row in rows:
        unknown = set(row) - set(column_names)
        if unknown:
            raise ValueError(f"Unknown columns for {table.name}: {sorted(unknown)}")
        if row.get(key_name) is None:
            raise ValueError(f"Rows for {table.name} require a {key_name!r} value")
        completed = {name: row.get(name) for name in column_names}
        unique.pop(completed[key_name], None)
        unique[completed[key_name]] = completed
    return list(unique.values())


def _key_column(table: Table) -> Column:
    return list(table.primary_key.columns)[0]


def _chunks(values: Sequence[Any], size: int) -> Iterable[Sequence[Any]]:
    for index in range(0, len(values), size):
        yield values[index : index + size]


class RelationalBackend(BackendStrategy):
    """Base class that encapsulates SQLAlchemy powered interactions."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine_instance: Engine | None = None

    def _create_engine(self) -> Engine:
        return create_engine(self.url, future=True)

    def _get_engine(self) -> Engine:
        if self._engine_instance is None:
            self._engine_instance = self._create_engine()
        return self._engine_instance

    @staticmethod
    def _table(name: str) -> Table:
        try:
            return TABLES[name]
        except KeyError:
            raise ValueError(f"Unknown table: {name}") from None

    def ensure_schema(self) -> None:
        engine = self._get_engine()
        LOGGER.info("Ensuring rate tables exist")
        try:
            SCHEMA.create_all(engine)
        except SQLAlchemyError as exc:
            raise PersistenceFailure("schema", str(exc)) from exc

    def _upsert_statement(self, connection: Connection, table: Table):
        """Build the dialect-native insert-or-update-on-conflict statement."""

        key_name = _key_column(table).name
        value_columns = [column.name for column in table.columns if column.name != key_name]
        dialect = connection.dialect.name
        if dialect in {"sqlite", "postgresql"}:
            stmt = (sqlite_insert if dialect == "sqlite" else postgres_insert)(table)
            return stmt.on_conflict_do_update(
                index_elements=[key_name],
                set_={name: stmt.excluded[name] for name in value_columns},
            )
        if dialect in {"mysql", "mariadb"}:
            stmt = mysql_insert(table)
            return stmt.on_duplicate_key_update({name: stmt.inserted[name] for name in value_columns})
        return None

    def _existing_keys(self, connection: Connection, table: Table, keys: Sequence[Any]) -> set[Any]:
        key_column = _key_column(table)
        existing: set[Any] = set()
        for chunk in _chunks(keys, _KEY_LOOKUP_CHUNK):
            existing.update(connection.execute(select(key_column).where(key_column.in_(chunk))).scalars())
        return existing

    def _write_batch(self, table: Table, batch: list[dict[str, Any]]) -> PersistenceResult:
        key_name = _key_column(table).name
        keys = [row[key_name] for row in batch]
        try:
            with self._get_engine().begin() as connection:
                existing = self._existing_keys(connection, table, keys)
                statement = self._upsert_statement(connection, table)
                if statement is not None:
                    connection.execute(statement, batch)
                else:
                    # Dialects without a native upsert: replace rows in the same transaction.
                    for chunk in _chunks(keys, _KEY_LOOKUP_CHUNK):
                        connection.execute(delete(table).where(_key_column(table).in_(chunk)))
                    connection.execute(insert(table), batch)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(table.name, str(exc)) from exc
        return PersistenceResult(inserted=len(batch) - len(existing), updated=len(existing))

    def upsert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> PersistenceResult:
        target = self._table(table)
        batch = _dedupe_by_key(rows, target)
        if not batch:
            return PersistenceResult()
        result = self._write_batch(target, batch)
        LOGGER.info(
            "%s: inserted %s rows, updated %s rows (total %s)",
            target.name,
            result.inserted,
            result.updated,
            result.total,
        )
        return result

    def write_metadata(self, entries: Mapping[str, str]) -> None:
        if not entries:
            return None
        now = datetime.now(timezone.utc)
        rows = [{"key": key, "value": str(value), "updated_at": now} for key, value in entries.items()]
        self._write_batch(SYNC_METADATA, rows)
        return None

    def read_metadata(self) -> dict[str, MetadataEntry]:
        query = select(SYNC_METADATA).order_by(SYNC_METADATA.c.key)
        with self._get_engine().connect() as connection:
            entries: dict[str, MetadataEntry] = {}
            for row in connection.execute(query):
                mapping = row._mapping
                entries[mapping["key"]] = MetadataEntry(
                    value=mapping["value"], updated_at=mapping["updated_at"]
                )
            return entries

    def fetch_range(
        self,
        table: str,
        start: date | None = None,
        end: date | None = None,
    ) -> list[dict[str, Any]]:
        target = self._table(table)
        if target is SYNC_METADATA:
            raise ValueError("Use read_metadata() for sync metadata")
        query = select(target).order_by(target.c.date)
        if start is not None:
            query = query.where(target.c.date >= start)
        if end is not None:
            query = query.where(target.c.date <= end)
        with self._get_engine().connect() as connection:
            return [dict(row._mapping) for row in connection.execute(query)]

    def spreads(
        self,
        kind: SpreadKind,
        start: date | None = None,
        end: date | None = None,
    ) -> list[dict[str, Any]]:
        """Return ``{date, value}`` spread points used by the dashboard charts."""

        if kind not in SPREAD_KINDS:
            raise ValueError(f"Invalid spread type: {kind}")
        if kind == "sofr-percentile":
            query = select(
                SOFR_RATES.c.date, (SOFR_RATES.c.p99 - SOFR_RATES.c.p1).label("value")
            ).where(SOFR_RATES.c.p99.is_not(None), SOFR_RATES.c.p1.is_not(None))
            date_column = SOFR_RATES.c.date
        else:
            rates = SOFR_RATES if kind == "sofr-rrp" else EFFR_RATES
            query = (
                select(rates.c.date, (rates.c.rate - POLICY_RATES.c.rrp).label("value"))
                .select_from(rates.join(POLICY_RATES, rates.c.date == POLICY_RATES.c.date))
                .where(POLICY_RATES.c.rrp.is_not(None), rates.c.rate.is_not(None))
            )
            date_column = rates.c.date
        if start is not None:
            query = query.where(date_column >= start)
        if end is not None:
            query = query.where(date_column <= end)
        query = query.order_by(date_column)
        with self._get_engine().connect() as connection:
            return [{"date": row.date, "value": row.value} for row in connection.execute(query)]

    def volume(self, start: date | None = None, end: date | None = None) -> list[dict[str, Any]]:
        """Return SOFR traded volume points (billions), skipping days without volume."""

        query = select(SOFR_RATES.c.date, SOFR_RATES.c.volume_billions.label("value")).where(
            SOFR_RATES.c.volume_billions.is_not(None)
        )
        if start is not None:
            query = query.where(SOFR_RATES.c.date >= start)
        if end is not None:
            query = query.where(SOFR_RATES.c.date <= end)
        with self._get_engine().connect() as connection:
            return [
                {"date": row.date, "value": row.value}
                for row in connection.execute(query.order_by(SOFR_RATES.c.date))
            ]

    def table_counts(self) -> dict[str, Any]:
        """Return row counts per series table plus the SOFR date coverage."""

        counts: dict[str, Any] = {}
        with self._get_engine().connect() as connection:
            for series, table_name in SERIES_TABLES.items():
                table = TABLES[table_name]
                counts[f"{series}_count"] = connection.execute(
                    select(func.count()).select_from(table)
                ).scalar_one()
            earliest, latest = connection.execute(
                select(func.min(SOFR_RATES.c.date), func.max(SOFR_RATES.c.date))
            ).one()
        counts["earliest_date"] = earliest
        counts["latest_date"] = latest
        return counts

    def close(self) -> None:  # pragma: no cover - trivial resource cleanup
        if self._engine_instance is not None:
            self._engine_instance.dispose()


__all__ = [
    "EFFR_RATES",
    "POLICY_RATES",
    "RRP_OPERATIONS",
    "RelationalBackend",
    "SCHEMA",
    "SOFR_RATES",
    "SPREAD_KINDS",
    "SYNC_METADATA",
    "TABLES",
]
