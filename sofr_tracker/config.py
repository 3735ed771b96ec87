"""Runtime configuration for the synchronisation pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from dotenv import load_dotenv

load_dotenv()

NYFED_BASE_URL = "https://markets.newyorkfed.org"
FRED_BASE_URL = "https://fred.stlouisfed.org/graph/fredgraph.csv"
DEFAULT_LOOKBACK_DAYS = 7
DEFAULT_HTTP_TIMEOUT = 30.0
USER_AGENT = "sofr-tracker-sync/1.0"


class MissingRatePolicy(str, Enum):
    """What to store when an observation carries no primary rate.

    ``ZERO`` keeps the historical behaviour of persisting ``0.0``; ``NULL``
    stores ``None`` so gaps are visible downstream.
    """

    ZERO = "zero"
    NULL = "null"

    def apply(self, value: float | None) -> float | None:
        if value is None and self is MissingRatePolicy.ZERO:
            return 0.0
        return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Pipeline settings, read from the environment (and ``.env``) by default."""

    db_url: str | None = field(default_factory=lambda: os.getenv("SOFR_TRACKER_DB_URL") or None)
    nyfed_base_url: str = field(
        default_factory=lambda: os.getenv("NYFED_BASE_URL", NYFED_BASE_URL)
    )
    fred_base_url: str = field(default_factory=lambda: os.getenv("FRED_BASE_URL", FRED_BASE_URL))
    http_timeout: float = field(
        default_factory=lambda: float(
            os.getenv("SOFR_TRACKER_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT))
        )
    )
    lookback_days: int = field(
        default_factory=lambda: int(
            os.getenv("SOFR_TRACKER_LOOKBACK_DAYS", str(DEFAULT_LOOKBACK_DAYS))
        )
    )
    missing_rate_policy: MissingRatePolicy = field(
        default_factory=lambda: MissingRatePolicy(
            os.getenv("SOFR_TRACKER_MISSING_RATE_POLICY", MissingRatePolicy.ZERO.value).lower()
        )
    )
    single_flight: bool = field(
        default_factory=lambda: _env_bool("SOFR_TRACKER_SINGLE_FLIGHT", True)
    )

    def __post_init__(self) -> None:
        if isinstance(self.missing_rate_policy, str):
            self.missing_rate_policy = MissingRatePolicy(self.missing_rate_policy.lower())
        self.validate()

    def validate(self) -> None:
        """Validate numeric settings."""
        if self.http_timeout <= 0:
            raise ValueError("http_timeout must be positive")
        if self.lookback_days < 0:
            raise ValueError("lookback_days must not be negative")


__all__ = [
    "DEFAULT_HTTP_TIMEOUT",
    "DEFAULT_LOOKBACK_DAYS",
    "FRED_BASE_URL",
    "NYFED_BASE_URL",
    "USER_AGENT",
    "MissingRatePolicy",
    "Settings",
]
