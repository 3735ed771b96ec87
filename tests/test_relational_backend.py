"""Relational backend integration tests using SQLite."""

from datetime import date
from pathlib import Path

import pytest

from sofr_tracker.db.base_backend import PersistenceResult
from sofr_tracker.db.relational_backend import RelationalBackend
from sofr_tracker.errors import PersistenceFailure


def _sofr(day: int, rate: float, **extra: float | None) -> dict:
    return {"date": date(2024, 1, day), "rate": rate, **extra}


def test_upsert_reports_inserted_and_updated(backend) -> None:
    first = backend.upsert("sofr_rates", [_sofr(1, 5.31), _sofr(2, 5.32)])
    assert first == PersistenceResult(inserted=2, updated=0)

    second = backend.upsert("sofr_rates", [_sofr(2, 5.35), _sofr(3, 5.33)])
    assert second.inserted == 1
    assert second.updated == 1
    assert second.total == 2

    rows = backend.fetch_range("sofr_rates", date(2024, 1, 1), date(2024, 1, 31))
    assert [(row["date"], row["rate"]) for row in rows] == [
        (date(2024, 1, 1), 5.31),
        (date(2024, 1, 2), 5.35),
        (date(2024, 1, 3), 5.33),
    ]


def test_last_write_wins_and_clears_omitted_fields(backend) -> None:
    backend.upsert("sofr_rates", [_sofr(2, 5.32, p99=5.40, volume_billions=1850.0)])
    backend.upsert("sofr_rates", [_sofr(2, 5.30)])

    (row,) = backend.fetch_range("sofr_rates")
    assert row["rate"] == 5.30
    assert row["p99"] is None
    assert row["volume_billions"] is None


def test_duplicate_keys_in_one_batch_keep_the_last_row(backend) -> None:
    result = backend.upsert("policy_rates", [
        {"date": date(2024, 1, 2), "iorb": 5.40},
        {"date": date(2024, 1, 2), "iorb": 5.15, "rrp": 5.05},
    ])

    assert result == PersistenceResult(inserted=1, updated=0)
    (row,) = backend.fetch_range("policy_rates")
    assert row == {"date": date(2024, 1, 2), "iorb": 5.15, "srf": None, "rrp": 5.05}


def test_empty_batch_is_a_no_op(backend) -> None:
    assert backend.upsert("rrp_operations", []).total == 0
    assert backend.fetch_range("rrp_operations") == []


def test_unknown_table_and_columns_are_rejected(backend) -> None:
    with pytest.raises(ValueError, match="Unknown table"):
        backend.upsert("libor_rates", [_sofr(1, 5.0)])
    with pytest.raises(ValueError, match="Unknown columns"):
        backend.upsert("sofr_rates", [_sofr(1, 5.0, median=5.0)])
    with pytest.raises(ValueError):
        backend.upsert("sofr_rates", [{"rate": 5.0}])
    with pytest.raises(ValueError):
        backend.fetch_range("sync_metadata")


def test_metadata_is_overwritten_per_key(backend) -> None:
    backend.write_metadata({"last_sync": "2024-01-03T12:00:00+00:00", "last_sync_end_date": "2024-01-03"})
    backend.write_metadata({"last_sync": "2024-01-04T12:00:00+00:00"})

    metadata = backend.read_metadata()
    assert metadata["last_sync"].value == "2024-01-04T12:00:00+00:00"
    assert metadata["last_sync_end_date"].value == "2024-01-03"
    assert metadata["last_sync"].updated_at is not None


def test_fetch_range_is_inclusive_and_ordered(backend) -> None:
    backend.upsert("effr_rates", [
        {"date": date(2024, 1, day), "rate": 5.33, "target_low": 5.25, "target_high": 5.50}
        for day in (5, 1, 3)
    ])

    rows = backend.fetch_range("effr_rates", date(2024, 1, 3), date(2024, 1, 5))

    assert [row["date"] for row in rows] == [date(2024, 1, 3), date(2024, 1, 5)]
    assert rows[0]["target_high"] == 5.50


def test_spreads_and_volume(backend) -> None:
    backend.upsert("sofr_rates", [
        _sofr(1, 5.31, p1=5.25, p99=5.40, volume_billions=1800.0),
        _sofr(2, 5.32, p1=5.26),
    ])
    backend.upsert("effr_rates", [{"date": date(2024, 1, 2), "rate": 5.33}])
    backend.upsert("policy_rates", [
        {"date": date(2024, 1, 1), "iorb": 5.40},
        {"date": date(2024, 1, 2), "iorb": 5.40, "rrp": 5.30},
    ])

    percentile = backend.spreads("sofr-percentile")
    assert [point["date"] for point in percentile] == [date(2024, 1, 1)]
    assert percentile[0]["value"] == pytest.approx(0.15)

    sofr_rrp = backend.spreads("sofr-rrp", date(2024, 1, 1), date(2024, 1, 31))
    assert [point["date"] for point in sofr_rrp] == [date(2024, 1, 2)]
    assert sofr_rrp[0]["value"] == pytest.approx(0.02)

    effr_rrp = backend.spreads("effr-rrp")
    assert effr_rrp[0]["value"] == pytest.approx(0.03)

    assert backend.volume() == [{"date": date(2024, 1, 1), "value": 1800.0}]

    with pytest.raises(ValueError, match="Invalid spread type"):
        backend.spreads("sofr-libor")


def test_table_counts(backend) -> None:
    assert backend.table_counts()["sofr_count"] == 0

    backend.upsert("sofr_rates", [_sofr(1, 5.31), _sofr(4, 5.30)])
    backend.upsert("rrp_operations", [{"date": date(2024, 1, 2), "total_accepted_billions": 700.0}])

    counts = backend.table_counts()
    assert counts == {
        "sofr_count": 2,
        "effr_count": 0,
        "policy_count": 0,
        "rrp_count": 1,
        "earliest_date": date(2024, 1, 1),
        "latest_date": date(2024, 1, 4),
    }


def test_missing_schema_surfaces_persistence_failure(tmp_path: Path) -> None:
    backend = RelationalBackend(f"sqlite:///{tmp_path / 'empty.db'}")

    with pytest.raises(PersistenceFailure) as excinfo:
        backend.upsert("sofr_rates", [_sofr(1, 5.31)])

    assert excinfo.value.table == "sofr_rates"
    backend.close()


def test_ensure_schema_is_idempotent(tmp_path: Path) -> None:
    backend = RelationalBackend(f"sqlite:///{tmp_path / 'relational.db'}")
    backend.ensure_schema()
    backend.ensure_schema()

    assert backend.upsert("sofr_rates", [_sofr(1, 5.31)]).inserted == 1
    backend.close()
