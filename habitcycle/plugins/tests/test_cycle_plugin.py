"""Tests for the cycle tracker plugin: form transitions, persistence, day badges."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

import pytest

from habitcycle.engine.config_loader import CalendarConfig, CycleConfig
from habitcycle.engine.overlay import EventTag
from habitcycle.engine.prediction import ValidationError
from habitcycle.models.habits import Habit
from habitcycle.plugins.base import PluginDataError
from habitcycle.plugins.cycle_plugin import (
    PLUGIN_ID,
    CycleFormState,
    CycleTrackerPlugin,
    FieldEdit,
    build_plugin,
)
from habitcycle.plugins.data_bag import merge_namespace
from habitcycle.plugins.store import InMemoryHabitStore
from habitcycle.plugins.tests.conftest import (
    FOREIGN_NAMESPACE,
    FOREIGN_VALUE,
    TEST_HABIT_ID,
    TEST_START,
)


def with_bag_value(habit: Habit, value: object) -> Habit:
    return habit.model_copy(
        update={"plugin_data": merge_namespace(habit.plugin_data, PLUGIN_ID, value)}
    )


# ---------------------------------------------------------------------------
# Settings form transitions
# ---------------------------------------------------------------------------


class TestFormState:
    def test_initial_state_uses_habit_start_and_defaults(
        self, tracker: CycleTrackerPlugin, habit: Habit
    ) -> None:
        state = tracker.initial_state(habit)
        assert state.is_valid
        assert state.values["start_date"] == TEST_START
        assert state.values["cycle_length"] == 28
        assert state.predictions is not None
        assert len(state.predictions) == 3
        assert state.predictions[0].ovulation_date == date(2024, 1, 15)

    def test_valid_edit_reprojects(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        state = tracker.initial_state(habit)
        state = tracker.apply_field_edit(state, FieldEdit("cycle_length", 30))
        assert state.is_valid
        assert state.predictions is not None
        assert state.predictions[0].next_cycle_start == date(2024, 1, 31)
        assert state.predictions[0].ovulation_date == date(2024, 1, 17)

    def test_stepper_text_accepted(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        state = tracker.apply_field_edit(
            tracker.initial_state(habit), FieldEdit("prediction_count", " 5 ")
        )
        assert state.is_valid
        assert state.predictions is not None
        assert len(state.predictions) == 5

    @pytest.mark.parametrize("text", ["--5", "\u00b2", "5-", "2 8", "28.0"])
    def test_malformed_stepper_text_flagged_inline(
        self, tracker: CycleTrackerPlugin, habit: Habit, text: str
    ) -> None:
        state = tracker.apply_field_edit(tracker.initial_state(habit), FieldEdit("cycle_length", text))
        assert set(state.errors) == {"cycle_length"}
        assert state.values["cycle_length"] == text
        assert state.predictions is None

    def test_invalid_luteal_flagged_and_not_projected(
        self, tracker: CycleTrackerPlugin, habit: Habit
    ) -> None:
        state = tracker.apply_field_edit(
            tracker.initial_state(habit), FieldEdit("luteal_phase", 24)
        )
        assert not state.is_valid
        assert set(state.errors) == {"luteal_phase"}
        assert "23" in state.errors["luteal_phase"]
        assert state.predictions is None
        assert state.params is None
        assert state.values["luteal_phase"] == 24

    def test_shrinking_cycle_invalidates_luteal(
        self, tracker: CycleTrackerPlugin, habit: Habit
    ) -> None:
        state = tracker.initial_state(habit)
        state = tracker.apply_field_edit(state, FieldEdit("luteal_phase", 20))
        assert state.is_valid
        state = tracker.apply_field_edit(state, FieldEdit("cycle_length", 22))
        assert set(state.errors) == {"luteal_phase"}

    def test_recovers_after_fix(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        state = tracker.initial_state(habit)
        state = tracker.apply_field_edit(state, FieldEdit("cycle_length", "abc"))
        assert "cycle_length" in state.errors
        state = tracker.apply_field_edit(state, FieldEdit("cycle_length", "29"))
        assert state.is_valid
        assert state.errors == {}

    def test_no_clamping(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        state = tracker.apply_field_edit(tracker.initial_state(habit), FieldEdit("cycle_length", 40))
        assert state.values["cycle_length"] == 40
        assert "cycle_length" in state.errors

    @pytest.mark.parametrize("value", [None, "", "31/02/2024", "2024-02-30"])
    def test_bad_start_date(self, tracker: CycleTrackerPlugin, habit: Habit, value: object) -> None:
        state = tracker.apply_field_edit(tracker.initial_state(habit), FieldEdit("start_date", value))
        assert set(state.errors) == {"start_date"}
        assert state.predictions is None

    def test_unknown_field(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        with pytest.raises(KeyError):
            tracker.apply_field_edit(tracker.initial_state(habit), FieldEdit("colour", "red"))

    def test_transition_is_pure(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        state = tracker.initial_state(habit)
        edited = tracker.apply_field_edit(state, FieldEdit("cycle_length", 30))
        assert state.values["cycle_length"] == 28
        assert edited is not state
        assert tracker.apply_field_edit(state, FieldEdit("cycle_length", 30)) == edited


# ---------------------------------------------------------------------------
# Persistence through the merge contract
# ---------------------------------------------------------------------------


class TestSave:
    def test_save_writes_namespace_and_keeps_siblings(
        self, tracker: CycleTrackerPlugin, habit: Habit, store: InMemoryHabitStore
    ) -> None:
        state = tracker.initial_state(habit)
        updated = tracker.save(store, TEST_HABIT_ID, state)
        assert updated.plugin_data[FOREIGN_NAMESPACE] == FOREIGN_VALUE
        value = updated.plugin_data[PLUGIN_ID]
        assert value["cycleStart"] == "2024-01-01"
        assert value["cycleLength"] == 28
        assert value["lutealPhase"] == 14
        assert value["fertileWindowOffsets"] == {"daysBefore": 5, "daysAfter": 1}
        assert value["predictions"][0] == {
            "cycleStart": "2024-01-01",
            "nextCycleStart": "2024-01-29",
            "ovulationDate": "2024-01-15",
            "fertileWindow": {"start": "2024-01-10", "end": "2024-01-16"},
        }

    def test_save_uses_latest_bag(
        self, tracker: CycleTrackerPlugin, habit: Habit, store: InMemoryHabitStore
    ) -> None:
        state = tracker.initial_state(habit)
        # Another plugin writes after the form was opened
        latest = store.get_habit(TEST_HABIT_ID)
        store.apply_partial_update(
            TEST_HABIT_ID,
            {"pluginData": merge_namespace(latest.plugin_data, "core-notes", [])},
        )
        updated = tracker.save(store, TEST_HABIT_ID, state)
        assert set(updated.plugin_data) == {FOREIGN_NAMESPACE, "core-notes", PLUGIN_ID}

    def test_invalid_state_not_saved(
        self, tracker: CycleTrackerPlugin, habit: Habit, store: InMemoryHabitStore
    ) -> None:
        state = tracker.apply_field_edit(tracker.initial_state(habit), FieldEdit("luteal_phase", 24))
        with pytest.raises(ValidationError) as exc_info:
            tracker.save(store, TEST_HABIT_ID, state)
        assert exc_info.value.field == "luteal_phase"
        assert PLUGIN_ID not in store.get_habit(TEST_HABIT_ID).plugin_data

    def test_round_trip_restores_form(
        self, tracker: CycleTrackerPlugin, habit: Habit, store: InMemoryHabitStore
    ) -> None:
        state = tracker.initial_state(habit)
        state = tracker.apply_field_edit(state, FieldEdit("cycle_length", 32))
        state = tracker.apply_field_edit(state, FieldEdit("luteal_phase", 12))
        saved = tracker.save(store, TEST_HABIT_ID, state)
        restored = tracker.initial_state(saved)
        assert restored.values == state.values
        assert restored.predictions == state.predictions


# ---------------------------------------------------------------------------
# Reading back / day indicator
# ---------------------------------------------------------------------------


class TestDayIndicator:
    def test_indicator_after_save(
        self, tracker: CycleTrackerPlugin, habit: Habit, store: InMemoryHabitStore
    ) -> None:
        saved = tracker.save(store, TEST_HABIT_ID, tracker.initial_state(habit))
        assert tracker.day_indicator(saved, date(2024, 1, 1)) is EventTag.period
        assert tracker.day_indicator(saved, date(2024, 1, 15)) is EventTag.ovulation
        assert tracker.day_indicator(saved, date(2024, 1, 12)) is EventTag.fertile
        assert tracker.day_indicator(saved, date(2024, 1, 29)) is EventTag.period
        assert tracker.day_indicator(saved, date(2024, 6, 1)) is None

    def test_no_data_no_indicator(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        assert tracker.event_map_for(habit) == {}
        assert tracker.day_indicator(habit, date(2024, 1, 1)) is None

    def test_legacy_value_upgraded(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        legacy = {
            "cycleStart": "2024-01-01",
            "cycleLength": 28,
            "nextPeriod": "2024-01-29",
            "ovulationDate": "2024-01-15",
            "fertileWindow": {"start": "2024-01-12", "end": "2024-01-16"},
        }
        old = with_bag_value(habit, legacy)
        data = tracker.load(old)
        assert data is not None
        assert len(data.predictions) == 1
        assert data.predictions[0].next_cycle_start == date(2024, 1, 29)
        assert tracker.day_indicator(old, date(2024, 1, 12)) is EventTag.fertile
        assert tracker.day_indicator(old, date(2024, 1, 10)) is None

    def test_legacy_without_next_period(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        legacy = {"cycleStart": "2024-01-01", "cycleLength": 30, "ovulationDate": "2024-01-17"}
        data = tracker.load(with_bag_value(habit, legacy))
        assert data is not None
        assert data.predictions[0].next_cycle_start == date(2024, 1, 31)

    def test_legacy_seeds_form(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        legacy = {"cycleStart": "2024-03-04", "cycleLength": 26, "ovulationDate": "2024-03-16"}
        state = tracker.initial_state(with_bag_value(habit, legacy))
        assert state.values["start_date"] == date(2024, 3, 4)
        assert state.values["cycle_length"] == 26
        assert state.values["prediction_count"] == 3

    def test_corrupt_value_raises_on_load(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        with pytest.raises(PluginDataError, match=PLUGIN_ID):
            tracker.load(with_bag_value(habit, ["not", "a", "mapping"]))

    def test_corrupt_value_logged_and_empty(
        self,
        tracker: CycleTrackerPlugin,
        habit: Habit,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        broken = with_bag_value(habit, {"cycleStart": "yesterday"})
        with caplog.at_level(logging.WARNING, logger="habitcycle.plugins.cycle"):
            assert tracker.event_map_for(broken) == {}
        assert any(PLUGIN_ID in r.getMessage() for r in caplog.records)

    def test_corrupt_value_falls_back_to_defaults_in_form(
        self, tracker: CycleTrackerPlugin, habit: Habit
    ) -> None:
        state = tracker.initial_state(with_bag_value(habit, 42))
        assert state.is_valid
        assert state.values["start_date"] == TEST_START


class TestBuildPlugin:
    def test_record(self, cycle_config) -> None:
        from habitcycle.engine.prediction import CyclePredictionEngine

        plugin = build_plugin(CyclePredictionEngine(cycle_config))
        assert plugin.id == PLUGIN_ID
        assert plugin.prediction is not None
        assert plugin.notes is None
        assert plugin.metadata.settings["maxCycleLength"] == 35

    def test_form_state_type(self, tracker: CycleTrackerPlugin, habit: Habit) -> None:
        assert isinstance(tracker.initial_state(habit), CycleFormState)


class TestCalendarWeeks:
    def test_sunday_first_by_default(self, tracker: CycleTrackerPlugin) -> None:
        weeks = tracker.calendar_weeks(date(2024, 2, 14))
        assert weeks[0][0] == date(2024, 1, 28)
        assert all(week[0].weekday() == 6 for week in weeks)

    def test_monday_first_from_config(self, cycle_config: CycleConfig) -> None:
        from habitcycle.engine.prediction import CyclePredictionEngine

        monday = replace(cycle_config, calendar=CalendarConfig(week_start="monday"))
        tracker = CycleTrackerPlugin(CyclePredictionEngine(monday))
        weeks = tracker.calendar_weeks(date(2024, 2, 14))
        assert weeks[0][0] == date(2024, 1, 29)
        assert weeks[-1][-1] == date(2024, 3, 3)
        assert all(week[0].weekday() == 0 for week in weeks)
