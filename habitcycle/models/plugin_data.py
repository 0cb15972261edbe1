"""Pydantic schemas for the values plugins store under their namespace.

The shared plugin-data bag is untyped on the host side.  Each plugin reads
its own key back through one of these models, so a corrupt or foreign value
fails loudly instead of flowing into the engine.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from pydantic import ConfigDict, Field, TypeAdapter, model_validator

from habitcycle.models.base import HabitCycleBase


# ---------- Cycle tracker ----------


class FertileWindowRecord(HabitCycleBase):
    start: date
    end: date


class FertileWindowOffsetsRecord(HabitCycleBase):
    days_before: int = Field(default=5, ge=0)
    days_after: int = Field(default=1, ge=0)


class CyclePredictionRecord(HabitCycleBase):
    cycle_start: date
    next_cycle_start: date
    ovulation_date: date
    fertile_window: FertileWindowRecord


class CyclePluginData(HabitCycleBase):
    """Value stored under the cycle tracker's namespace.

    Plugin version 1.0.x stored a single cycle flattened into the top level::

        {"cycleStart": "2024-01-01", "cycleLength": 28,
         "nextPeriod": "2024-01-29", "ovulationDate": "2024-01-15",
         "fertileWindow": {"start": "2024-01-12", "end": "2024-01-16"}}

    That shape is upgraded on read into one entry of ``predictions``.
    """

    cycle_start: date
    cycle_length: int = Field(ge=1)
    luteal_phase: int | None = Field(default=None, ge=0)
    prediction_count: int | None = Field(default=None, ge=1)
    fertile_window_offsets: FertileWindowOffsetsRecord | None = None
    predictions: list[CyclePredictionRecord] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "predictions" in data:
            return data
        if "ovulationDate" not in data or "cycleStart" not in data:
            return data

        upgraded = {
            k: v
            for k, v in data.items()
            if k not in ("nextPeriod", "ovulationDate", "fertileWindow")
        }
        start = date.fromisoformat(str(data["cycleStart"])[:10])
        next_start = data.get("nextPeriod")
        if next_start is None and isinstance(data.get("cycleLength"), int):
            next_start = (start + timedelta(days=data["cycleLength"])).isoformat()
        ovulation = data["ovulationDate"]
        window = data.get("fertileWindow") or {"start": ovulation, "end": ovulation}
        upgraded["predictions"] = [
            {
                "cycleStart": start.isoformat(),
                "nextCycleStart": next_start,
                "ovulationDate": ovulation,
                "fertileWindow": window,
            }
        ]
        return upgraded


# ---------- Notes ----------


class NoteEntry(HabitCycleBase):
    """One date-stamped note.  Text is kept exactly as typed."""

    model_config = ConfigDict(str_strip_whitespace=False)

    text: str = ""
    note_date: date


NoteList = TypeAdapter(list[NoteEntry])
