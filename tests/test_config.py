from __future__ import annotations

import pytest

from sofr_tracker.config import (
    DEFAULT_LOOKBACK_DAYS,
    NYFED_BASE_URL,
    MissingRatePolicy,
    Settings,
)


def test_settings_default_from_environment(monkeypatch) -> None:
    for name in (
        "SOFR_TRACKER_DB_URL",
        "NYFED_BASE_URL",
        "SOFR_TRACKER_LOOKBACK_DAYS",
        "SOFR_TRACKER_MISSING_RATE_POLICY",
        "SOFR_TRACKER_SINGLE_FLIGHT",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.db_url is None
    assert settings.nyfed_base_url == NYFED_BASE_URL
    assert settings.lookback_days == DEFAULT_LOOKBACK_DAYS
    assert settings.missing_rate_policy is MissingRatePolicy.ZERO
    assert settings.single_flight is True


def test_settings_read_overrides(monkeypatch) -> None:
    monkeypatch.setenv("SOFR_TRACKER_DB_URL", "postgresql://localhost/rates")
    monkeypatch.setenv("SOFR_TRACKER_LOOKBACK_DAYS", "30")
    monkeypatch.setenv("SOFR_TRACKER_MISSING_RATE_POLICY", "NULL")
    monkeypatch.setenv("SOFR_TRACKER_SINGLE_FLIGHT", "off")

    settings = Settings()

    assert settings.db_url == "postgresql://localhost/rates"
    assert settings.lookback_days == 30
    assert settings.missing_rate_policy is MissingRatePolicy.NULL
    assert settings.single_flight is False


def test_settings_validation() -> None:
    with pytest.raises(ValueError):
        Settings(lookback_days=-1)
    with pytest.raises(ValueError):
        Settings(http_timeout=0)
    assert Settings(missing_rate_policy="null").missing_rate_policy is MissingRatePolicy.NULL


def test_missing_rate_policy_apply() -> None:
    assert MissingRatePolicy.ZERO.apply(None) == 0.0
    assert MissingRatePolicy.NULL.apply(None) is None
    assert MissingRatePolicy.NULL.apply(5.31) == 5.31
