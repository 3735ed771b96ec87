"""Calendar markers overlaid on the dashboard charts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

QUARTER_END_DAYS = ((3, 31), (6, 30), (9, 30), (12, 31))
# Estimated corporate tax payment dates, when reserves drain from money markets.
TAX_DEADLINE_DAYS = ((1, 15), (4, 15), (6, 15), (9, 15))


@dataclass(slots=True)
class CalendarMarkers:
    quarter_ends: list[date] = field(default_factory=list)
    tax_deadlines: list[date] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "quarterEnds": [day.isoformat() for day in self.quarter_ends],
            "taxDeadlines": [day.isoformat() for day in self.tax_deadlines],
        }


def calendar_markers(today: date | None = None) -> CalendarMarkers:
    """Return markers for the previous, current and next calendar year."""

    year = (today or date.today()).year
    years = (year - 1, year, year + 1)
    return CalendarMarkers(
        quarter_ends=[date(y, m, d) for y in years for m, d in QUARTER_END_DAYS],
        tax_deadlines=[date(y, m, d) for y in years for m, d in TAX_DEADLINE_DAYS],
    )


__all__ = ["CalendarMarkers", "calendar_markers"]
