"""Shared fixtures for the cycle engine test suite."""

from __future__ import annotations

from datetime import date

import pytest

from habitcycle.engine.config_loader import CycleConfig, FertileWindowOffsets, load_cycle_config
from habitcycle.engine.prediction import CycleParameters, CyclePredictionEngine

# Reference scenario: 28-day cycle, 14-day luteal phase, starting Jan 1 2024
TEST_START = date(2024, 1, 1)


@pytest.fixture
def cycle_config() -> CycleConfig:
    """Load the bundled cycle config for tests."""
    return load_cycle_config()


@pytest.fixture
def engine(cycle_config: CycleConfig) -> CyclePredictionEngine:
    return CyclePredictionEngine(cycle_config)


@pytest.fixture
def reference_params() -> CycleParameters:
    return CycleParameters(
        start_date=TEST_START,
        cycle_length=28,
        luteal_phase=14,
        prediction_count=2,
        fertile_window=FertileWindowOffsets(days_before=5, days_after=1),
    )
