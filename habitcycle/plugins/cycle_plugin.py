"""Cycle tracker plugin.

Stores the user's cycle settings and the resulting predictions under the
``menstrual-cycle-plugin`` namespace of a habit, and answers "what happens on
this day" for habit cards and calendars.

The settings form is modelled as a transition function: every field edit
produces a new ``CycleFormState`` that is re-validated and re-projected from
scratch.  An invalid state carries per-field messages and no predictions;
it can not be saved.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from habitcycle.engine.dates import to_calendar_date
from habitcycle.engine.overlay import (
    EventTag,
    build_event_map,
    classify,
    month_grid,
    primary_tag,
    week_start_index,
)
from habitcycle.engine.prediction import (
    CycleParameters,
    CyclePrediction,
    CyclePredictionEngine,
    FertileWindow,
    FieldError,
    ValidationError,
    validate_parameters,
)
from habitcycle.models.habits import Habit
from habitcycle.models.plugin_data import (
    CyclePluginData,
    CyclePredictionRecord,
    FertileWindowOffsetsRecord,
    FertileWindowRecord,
)
from habitcycle.plugins.base import Plugin, PluginDataError, PluginMetadata
from habitcycle.plugins.data_bag import merge_namespace, partial_update_for, read_namespace
from habitcycle.plugins.store import HabitStore

logger = logging.getLogger("habitcycle.plugins.cycle")

PLUGIN_ID = "menstrual-cycle-plugin"
PLUGIN_VERSION = "1.1.0"

FORM_FIELDS = ("start_date", "cycle_length", "luteal_phase", "prediction_count")
_NUMERIC_FIELDS = FORM_FIELDS[1:]


@dataclass(frozen=True)
class FieldEdit:
    """One user edit in the settings form."""

    field: str
    value: Any


@dataclass(frozen=True)
class CycleFormState:
    """Snapshot of the settings form.

    Attributes:
        values:      Field values as entered (may be invalid).
        errors:      Field name → message for every violated constraint.
        params:      Parsed parameters, only when the form is valid.
        predictions: Forecast for ``params``, only when the form is valid.
    """

    values: Mapping[str, Any]
    errors: Mapping[str, str] = field(default_factory=dict)
    params: CycleParameters | None = None
    predictions: tuple[CyclePrediction, ...] | None = None

    @property
    def is_valid(self) -> bool:
        return self.params is not None and not self.errors


def _coerce_int(value: Any) -> Any:
    """Accept stepper text like ``"28"``; leave anything else for validation."""
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value


# ---------------------------------------------------------------------------
# Record conversion
# ---------------------------------------------------------------------------


def _to_record(prediction: CyclePrediction) -> CyclePredictionRecord:
    return CyclePredictionRecord(
        cycle_start=prediction.cycle_start,
        next_cycle_start=prediction.next_cycle_start,
        ovulation_date=prediction.ovulation_date,
        fertile_window=FertileWindowRecord(
            start=prediction.fertile_window.start,
            end=prediction.fertile_window.end,
        ),
    )


def _from_record(record: CyclePredictionRecord) -> CyclePrediction:
    return CyclePrediction(
        cycle_start=record.cycle_start,
        next_cycle_start=record.next_cycle_start,
        ovulation_date=record.ovulation_date,
        fertile_window=FertileWindow(
            start=record.fertile_window.start,
            end=record.fertile_window.end,
        ),
    )


class CycleTrackerPlugin:
    """Prediction capability backed by the cycle engine.

    Usage::

        plugin = CycleTrackerPlugin()
        state = plugin.initial_state(habit)
        state = plugin.apply_field_edit(state, FieldEdit("cycle_length", 30))
        if state.is_valid:
            plugin.save(store, habit.id, state)
    """

    def __init__(self, engine: CyclePredictionEngine | None = None) -> None:
        self._engine = engine or CyclePredictionEngine()

    @property
    def engine(self) -> CyclePredictionEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Reading the namespace
    # ------------------------------------------------------------------

    def load(self, habit: Habit) -> CyclePluginData | None:
        """Parse this plugin's namespace value, or None when nothing is stored.

        Raises:
            PluginDataError: If the stored value does not match the schema.
        """
        raw = read_namespace(habit.plugin_data, PLUGIN_ID)
        if raw is None:
            return None
        try:
            return CyclePluginData.model_validate(raw)
        except SchemaValidationError as exc:
            raise PluginDataError(PLUGIN_ID, str(exc)) from exc

    def predictions_for(self, habit: Habit) -> list[CyclePrediction]:
        data = self.load(habit)
        if data is None:
            return []
        return [_from_record(r) for r in data.predictions]

    def event_map_for(self, habit: Habit) -> dict[date, frozenset[EventTag]]:
        """Day → tags for the stored predictions.

        A corrupt namespace is logged and shown as an empty overlay so a single
        bad habit does not break the calendar.
        """
        try:
            predictions = self.predictions_for(habit)
        except PluginDataError as exc:
            logger.warning("Habit %s: %s", habit.id, exc)
            return {}
        return build_event_map(predictions)

    def day_indicator(self, habit: Habit, day: date | datetime) -> EventTag | None:
        """The single event badge a habit card shows for ``day``."""
        return primary_tag(classify(day, self.event_map_for(habit)))

    def calendar_weeks(self, month: date | datetime) -> list[list[date]]:
        """Week rows for ``month``, starting on the configured ``calendar.week_start``."""
        return month_grid(month, week_start_index(self._engine.calendar.week_start))

    # ------------------------------------------------------------------
    # Settings form
    # ------------------------------------------------------------------

    def initial_state(self, habit: Habit) -> CycleFormState:
        """Form state seeded from stored settings, falling back to defaults.

        The start date defaults to the habit's own start date.
        """
        b = self._engine.bounds
        values: dict[str, Any] = {
            "start_date": habit.start_date,
            "cycle_length": b.default_cycle_length,
            "luteal_phase": b.default_luteal_phase,
            "prediction_count": b.default_prediction_count,
        }
        try:
            stored = self.load(habit)
        except PluginDataError as exc:
            logger.warning("Habit %s: ignoring stored cycle settings: %s", habit.id, exc)
            stored = None
        if stored is not None:
            values["start_date"] = stored.cycle_start
            values["cycle_length"] = stored.cycle_length
            if stored.luteal_phase is not None:
                values["luteal_phase"] = stored.luteal_phase
            if stored.prediction_count is not None:
                values["prediction_count"] = stored.prediction_count
        return self.evaluate(values)

    def apply_field_edit(self, state: CycleFormState, edit: FieldEdit) -> CycleFormState:
        """Apply one edit and re-derive validation and predictions.

        Raises:
            KeyError: ``edit.field`` is not a settings form field.
        """
        if edit.field not in FORM_FIELDS:
            raise KeyError(f"Unknown cycle form field {edit.field!r}")
        value = _coerce_int(edit.value) if edit.field in _NUMERIC_FIELDS else edit.value
        return self.evaluate({**state.values, edit.field: value})

    def evaluate(self, values: Mapping[str, Any]) -> CycleFormState:
        """Validate raw form values and, when valid, generate predictions."""
        errors: dict[str, str] = {}

        start = values.get("start_date")
        if start is None or start == "":
            errors["start_date"] = "Start date is required"
            start = None
        else:
            try:
                start = to_calendar_date(start)
            except (TypeError, ValueError):
                errors["start_date"] = f"Start date {start!r} is not a valid date"
                start = None

        params = CycleParameters(
            start_date=start,  # type: ignore[arg-type]
            cycle_length=values.get("cycle_length"),  # type: ignore[arg-type]
            luteal_phase=values.get("luteal_phase"),  # type: ignore[arg-type]
            prediction_count=values.get("prediction_count"),  # type: ignore[arg-type]
            fertile_window=self._engine.fertile_window,
        )
        for err in validate_parameters(params, self._engine.bounds):
            errors.setdefault(err.field, err.message)

        if errors:
            return CycleFormState(values=dict(values), errors=errors)

        predictions = tuple(self._engine.generate(params))
        return CycleFormState(values=dict(values), params=params, predictions=predictions)

    # ------------------------------------------------------------------
    # Writing the namespace
    # ------------------------------------------------------------------

    def to_namespace_value(self, state: CycleFormState) -> dict[str, Any]:
        """Serialize a valid form state as this plugin's namespace value."""
        if not state.is_valid or state.params is None or state.predictions is None:
            raise ValidationError(
                [FieldError(name, message) for name, message in state.errors.items()]
            )
        p = state.params
        data = CyclePluginData(
            cycle_start=p.start_date,
            cycle_length=p.cycle_length,
            luteal_phase=p.luteal_phase,
            prediction_count=p.prediction_count,
            fertile_window_offsets=FertileWindowOffsetsRecord(
                days_before=p.fertile_window.days_before,
                days_after=p.fertile_window.days_after,
            ),
            predictions=[_to_record(pred) for pred in state.predictions],
        )
        return data.to_json_value()

    def save(self, store: HabitStore, habit_id: str, state: CycleFormState) -> Habit:
        """Persist a valid form state under this plugin's namespace.

        Reads the habit's current bag from the store first so that values
        written by other plugins since the form opened are kept.

        Raises:
            ValidationError: The form state is invalid.
        """
        value = self.to_namespace_value(state)
        current = store.get_habit(habit_id)
        bag = merge_namespace(current.plugin_data, PLUGIN_ID, value)
        updated = store.apply_partial_update(habit_id, partial_update_for(bag))
        logger.info(
            "Saved %d cycle predictions for habit %s",
            len(value["predictions"]),
            habit_id,
        )
        return updated


def build_plugin(engine: CyclePredictionEngine | None = None) -> Plugin:
    """Plugin record for registration with the host."""
    tracker = CycleTrackerPlugin(engine)
    b = tracker.engine.bounds
    return Plugin(
        id=PLUGIN_ID,
        metadata=PluginMetadata(
            name="Cycle Tracker",
            description="Track and predict menstrual cycles",
            version=PLUGIN_VERSION,
            settings={
                "minCycleLength": b.min_cycle_length,
                "maxCycleLength": b.max_cycle_length,
                "defaultCycleLength": b.default_cycle_length,
                "lutealPhase": b.default_luteal_phase,
            },
        ),
        prediction=tracker,
    )
