"""Recurring-cycle prediction engine.

Given a cycle start date and a few numeric parameters, produces a chained
sequence of future cycles:

- Cycle start (period day 1)
- Next cycle start (``cycle_start + cycle_length``)
- Ovulation day (``cycle_start + cycle_length - luteal_phase``)
- Fertile window (configurable days before / after ovulation)

Pure and deterministic: no clock, no randomness, no I/O.  Invalid parameters
are rejected with a ``ValidationError`` listing every violated constraint;
nothing is clamped and no partial sequence is ever returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from habitcycle.engine.config_loader import (
    CalendarConfig,
    CycleBounds,
    CycleConfig,
    FertileWindowOffsets,
    get_cycle_config,
)
from habitcycle.engine.dates import add_days, to_calendar_date

logger = logging.getLogger("habitcycle.engine.prediction")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldError:
    """One violated parameter constraint.

    Attributes:
        field:   Parameter name (``start_date``, ``cycle_length``,
                 ``luteal_phase``, ``prediction_count``).
        message: Human-readable description, shown inline by the settings form.
    """

    field: str
    message: str


class ValidationError(ValueError):
    """Raised when CycleParameters violate a precondition."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors))

    @property
    def field(self) -> str | None:
        """Name of the first failed constraint."""
        return self.errors[0].field if self.errors else None

    def by_field(self) -> dict[str, str]:
        """First message per field, in the order the checks ran."""
        out: dict[str, str] = {}
        for err in self.errors:
            out.setdefault(err.field, err.message)
        return out


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FertileWindow:
    start: date
    end: date


@dataclass(frozen=True)
class CycleParameters:
    """Inputs for one prediction run.

    Attributes:
        start_date:       First day of the most recent period.
        cycle_length:     Days from one period start to the next.
        luteal_phase:     Days from ovulation to the next period start.
        prediction_count: How many cycles to forecast.
        fertile_window:   Offsets around ovulation that form the fertile window.
    """

    start_date: date
    cycle_length: int
    luteal_phase: int
    prediction_count: int
    fertile_window: FertileWindowOffsets = field(default_factory=FertileWindowOffsets)


@dataclass(frozen=True)
class CyclePrediction:
    """One forecast cycle.

    Attributes:
        cycle_start:      Predicted first day of the period.
        next_cycle_start: First day of the following cycle.
        ovulation_date:   Predicted ovulation day.
        fertile_window:   Closed interval of fertile days.
    """

    cycle_start: date
    next_cycle_start: date
    ovulation_date: date
    fertile_window: FertileWindow


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_parameters(
    params: CycleParameters, bounds: CycleBounds | None = None
) -> list[FieldError]:
    """Check every precondition and return the violations (empty when valid).

    Args:
        params: Parameters to check.
        bounds: Accepted ranges. Defaults to the standard 21–35 / 10–(L-5) / 1–12.

    Returns:
        FieldError list in field order: start_date, cycle_length,
        luteal_phase, prediction_count.
    """
    b = bounds or CycleBounds()
    errors: list[FieldError] = []

    if not isinstance(params.start_date, date):
        errors.append(FieldError("start_date", "Start date must be a calendar date"))

    cycle_ok = False
    if not _is_int(params.cycle_length):
        errors.append(FieldError("cycle_length", "Cycle length must be a whole number of days"))
    elif not b.min_cycle_length <= params.cycle_length <= b.max_cycle_length:
        errors.append(
            FieldError(
                "cycle_length",
                f"Cycle length must be between {b.min_cycle_length} and "
                f"{b.max_cycle_length} days, got {params.cycle_length}",
            )
        )
    else:
        cycle_ok = True

    if not _is_int(params.luteal_phase):
        errors.append(FieldError("luteal_phase", "Luteal phase must be a whole number of days"))
    elif params.luteal_phase < b.min_luteal_phase:
        errors.append(
            FieldError(
                "luteal_phase",
                f"Luteal phase must be at least {b.min_luteal_phase} days, "
                f"got {params.luteal_phase}",
            )
        )
    elif cycle_ok and params.luteal_phase > b.max_luteal_phase(params.cycle_length):
        errors.append(
            FieldError(
                "luteal_phase",
                f"Luteal phase must be at most {b.max_luteal_phase(params.cycle_length)} "
                f"days for a {params.cycle_length}-day cycle, got {params.luteal_phase}",
            )
        )

    if not _is_int(params.prediction_count):
        errors.append(
            FieldError("prediction_count", "Prediction count must be a whole number")
        )
    elif not b.min_prediction_count <= params.prediction_count <= b.max_prediction_count:
        errors.append(
            FieldError(
                "prediction_count",
                f"Prediction count must be between {b.min_prediction_count} and "
                f"{b.max_prediction_count}, got {params.prediction_count}",
            )
        )

    return errors


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------


def predict_cycle(
    cycle_start: date,
    cycle_length: int,
    luteal_phase: int,
    window: FertileWindowOffsets,
) -> CyclePrediction:
    """Derive the dates of a single cycle starting on ``cycle_start``.

    No validation; callers go through ``generate_predictions``.
    """
    ovulation = add_days(cycle_start, cycle_length - luteal_phase)
    return CyclePrediction(
        cycle_start=cycle_start,
        next_cycle_start=add_days(cycle_start, cycle_length),
        ovulation_date=ovulation,
        fertile_window=FertileWindow(
            start=add_days(ovulation, -window.days_before),
            end=add_days(ovulation, window.days_after),
        ),
    )


def generate_predictions(
    params: CycleParameters, bounds: CycleBounds | None = None
) -> list[CyclePrediction]:
    """Forecast ``params.prediction_count`` chained cycles.

    Each prediction's ``cycle_start`` equals the previous one's
    ``next_cycle_start``.

    Args:
        params: Validated or unvalidated parameters.
        bounds: Accepted ranges (defaults to the standard bounds).

    Returns:
        Exactly ``prediction_count`` predictions, oldest first.

    Raises:
        ValidationError: If any precondition fails.
    """
    errors = validate_parameters(params, bounds)
    if errors:
        raise ValidationError(errors)

    predictions: list[CyclePrediction] = []
    # A datetime start keys the overlay by calendar day, not by timestamp
    start = to_calendar_date(params.start_date)
    cycle_start = start
    for _ in range(params.prediction_count):
        prediction = predict_cycle(
            cycle_start, params.cycle_length, params.luteal_phase, params.fertile_window
        )
        predictions.append(prediction)
        cycle_start = prediction.next_cycle_start

    logger.debug(
        "Generated %d predictions from %s (length=%d, luteal=%d)",
        len(predictions),
        start,
        params.cycle_length,
        params.luteal_phase,
    )
    return predictions


def cycle_day(cycle_start: date, query_date: date | datetime) -> int:
    """Return the 1-indexed cycle day of ``query_date``.

    Day 1 is the first day of the period; dates before it give zero or
    negative numbers.
    """
    return (to_calendar_date(query_date) - cycle_start).days + 1


class CyclePredictionEngine:
    """Prediction engine bound to the configured bounds and window offsets.

    Usage::

        engine = CyclePredictionEngine()
        predictions = engine.predict(date(2024, 1, 1), cycle_length=28)
        predictions[0].ovulation_date   # 2024-01-15
    """

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    @property
    def bounds(self) -> CycleBounds:
        return self._config.bounds

    @property
    def fertile_window(self) -> FertileWindowOffsets:
        return self._config.fertile_window

    @property
    def calendar(self) -> CalendarConfig:
        return self._config.calendar

    def parameters(
        self,
        start_date: date | datetime | str,
        cycle_length: int | None = None,
        luteal_phase: int | None = None,
        prediction_count: int | None = None,
        fertile_window: FertileWindowOffsets | None = None,
    ) -> CycleParameters:
        """Build CycleParameters, filling omitted values from config defaults.

        An unparseable ``start_date`` is reported as a ``ValidationError`` on
        that field rather than a bare ``ValueError``.
        """
        try:
            start = to_calendar_date(start_date)
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                [FieldError("start_date", f"Start date is not a valid date: {exc}")]
            ) from exc
        b = self.bounds
        return CycleParameters(
            start_date=start,
            cycle_length=b.default_cycle_length if cycle_length is None else cycle_length,
            luteal_phase=b.default_luteal_phase if luteal_phase is None else luteal_phase,
            prediction_count=(
                b.default_prediction_count if prediction_count is None else prediction_count
            ),
            fertile_window=fertile_window or self.fertile_window,
        )

    def validate(self, params: CycleParameters) -> list[FieldError]:
        return validate_parameters(params, self.bounds)

    def generate(self, params: CycleParameters) -> list[CyclePrediction]:
        return generate_predictions(params, self.bounds)

    def predict(
        self,
        start_date: date | datetime | str,
        cycle_length: int | None = None,
        luteal_phase: int | None = None,
        prediction_count: int | None = None,
    ) -> list[CyclePrediction]:
        """Shortcut for ``generate(parameters(...))``."""
        return self.generate(
            self.parameters(start_date, cycle_length, luteal_phase, prediction_count)
        )
