"""Merge sparse single-value series into one row per date."""

from __future__ import annotations

from datetime import date
from typing import Callable, Mapping, Sequence, TypeVar

from sofr_tracker.ingestion.models import PolicyRateRow, SeriesPoint

RowT = TypeVar("RowT")


def reconcile(
    series: Mapping[str, Sequence[SeriesPoint]],
    row_factory: Callable[[date], RowT],
) -> list[RowT]:
    """Return one row per date present in any series, sorted by date.

    ``series`` maps a row attribute name to its observations. Every row starts
    from ``row_factory(day)`` (all value fields ``None``) and only the series
    that actually publish ``day`` fill their field, so the result does not
    depend on the order of ``series``.
    """

    all_dates: set[date] = set()
    for points in series.values():
        all_dates.update(point.rate_date for point in points)

    rows: dict[date, RowT] = {day: row_factory(day) for day in sorted(all_dates)}
    for field_name, points in series.items():
        for point in points:
            setattr(rows[point.rate_date], field_name, point.value)
    return list(rows.values())


def reconcile_policy_rates(
    iorb: Sequence[SeriesPoint],
    srf: Sequence[SeriesPoint],
    rrp: Sequence[SeriesPoint],
) -> list[PolicyRateRow]:
    return reconcile({"iorb": iorb, "srf": srf, "rrp": rrp}, PolicyRateRow)


__all__ = ["reconcile", "reconcile_policy_rates"]
