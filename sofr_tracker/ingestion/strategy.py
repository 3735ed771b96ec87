"""Abstractions for pluggable upstream adapters."""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol, Sequence


class RowLike(Protocol):
    def as_row(self) -> dict[str, Any]:
        ...  # pragma: no cover - protocol definition


class UpstreamAdapter(Protocol):
    """Contract for fetching one series for an inclusive date window.

    Implementations return normalised records exposing ``as_row()`` and raise
    :class:`~sofr_tracker.errors.UpstreamUnavailable` when the upstream fails.
    """

    name: str

    async def fetch(self, start_date: date, end_date: date) -> Sequence[RowLike]:
        ...  # pragma: no cover - protocol definition


__all__ = ["RowLike", "UpstreamAdapter"]
