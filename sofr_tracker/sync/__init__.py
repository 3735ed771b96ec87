"""Synchronisation passes for :mod:`sofr_tracker`."""

from __future__ import annotations

from sofr_tracker.sync.orchestrator import SyncOrchestrator, SyncResult

__all__ = ["SyncOrchestrator", "SyncResult"]
