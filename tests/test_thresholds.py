"""Unit tests for threshold clamping and defaults."""

from __future__ import annotations

import pytest

from models.thresholds import (
    DEFAULT_CO_THRESHOLDS,
    CoThresholds,
    FireRiskThresholds,
    ThresholdSet,
    clamp_co_thresholds,
)


@pytest.mark.parametrize(
    ("kwargs", "expected"),
    [
        ({"warning": 5}, {"co_warning_threshold": 10.0}),
        ({"warning": 70}, {"co_warning_threshold": 50.0}),
        ({"danger": 120}, {"co_danger_threshold": 120}),
        ({"danger": 20}, {"co_danger_threshold": 50.0}),
        ({"critical": 900}, {"co_critical_threshold": 800.0}),
        ({"critical": 100}, {"co_critical_threshold": 200.0}),
    ],
)
def test_clamp_co_thresholds_into_bounds(kwargs: dict, expected: dict) -> None:
    assert clamp_co_thresholds(**kwargs) == expected


def test_clamp_only_returns_supplied_values() -> None:
    assert clamp_co_thresholds() == {}
    assert set(clamp_co_thresholds(warning=30, critical=500)) == {
        "co_warning_threshold",
        "co_critical_threshold",
    }


def test_from_stored_defaults_missing_or_zero_values() -> None:
    thresholds = ThresholdSet.from_stored(gas_threshold=0, temp_threshold=None, co_danger=150)

    assert thresholds.gas_threshold == 40
    assert thresholds.temp_threshold == 60
    assert thresholds.co == CoThresholds(warning=35, danger=150, critical=400)


def test_default_threshold_set_matches_stored_defaults() -> None:
    assert ThresholdSet() == ThresholdSet.from_stored()
    assert ThresholdSet().co == DEFAULT_CO_THRESHOLDS


def test_fire_risk_thresholds_sit_below_alarm_thresholds() -> None:
    thresholds = ThresholdSet.from_stored(gas_threshold=55, temp_threshold=70, co_warning=20)

    assert thresholds.fire_risk_thresholds() == FireRiskThresholds(
        co_warning=20, temp_warning=60, gas_warning=45
    )


def test_default_fire_risk_thresholds() -> None:
    assert ThresholdSet().fire_risk_thresholds() == FireRiskThresholds()
