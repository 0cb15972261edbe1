"""Shared fixtures for the plugin test suite."""

from __future__ import annotations

from datetime import date

import pytest

from habitcycle.engine.config_loader import CycleConfig, load_cycle_config
from habitcycle.engine.prediction import CyclePredictionEngine
from habitcycle.models.habits import Habit
from habitcycle.plugins.cycle_plugin import CycleTrackerPlugin
from habitcycle.plugins.notes_plugin import NotesPlugin
from habitcycle.plugins.store import InMemoryHabitStore

TEST_HABIT_ID = "habit-1"
TEST_START = date(2024, 1, 1)

# A value written by some other plugin that must survive every write
FOREIGN_NAMESPACE = "wakatime-plugin"
FOREIGN_VALUE = {"apiKey": "secret", "stats": {"2024-01-01": 3600}}


@pytest.fixture
def cycle_config() -> CycleConfig:
    return load_cycle_config()


@pytest.fixture
def habit() -> Habit:
    return Habit.model_validate(
        {
            "id": TEST_HABIT_ID,
            "title": "Cycle",
            "frequency": "daily",
            "startDate": "2024-01-01T09:30:00.000Z",
            "completedDates": [],
            "plugins": [{"id": "menstrual-cycle-plugin", "enabled": True}],
            "pluginData": {FOREIGN_NAMESPACE: FOREIGN_VALUE},
        }
    )


@pytest.fixture
def store(habit: Habit) -> InMemoryHabitStore:
    return InMemoryHabitStore([habit])


@pytest.fixture
def tracker(cycle_config: CycleConfig) -> CycleTrackerPlugin:
    return CycleTrackerPlugin(CyclePredictionEngine(cycle_config))


@pytest.fixture
def notes(cycle_config: CycleConfig) -> NotesPlugin:
    return NotesPlugin(cycle_config)
