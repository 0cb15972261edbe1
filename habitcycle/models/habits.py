"""Pydantic models for the host's habit entity."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from habitcycle.models.base import HabitCycleBase


class HabitFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class PluginHabit(HabitCycleBase):
    """A plugin enabled on one habit, with its per-habit settings."""

    id: str = Field(min_length=1)
    enabled: bool = True
    settings: dict[str, Any] | None = None


class Habit(HabitCycleBase):
    """Habit entity as stored by the host.

    ``plugin_data`` is the shared bag, keyed by plugin id.  Each plugin owns
    exactly one key and writes it through ``merge_namespace``.
    """

    id: str = Field(min_length=1)
    title: str
    description: str | None = None
    frequency: HabitFrequency = HabitFrequency.daily
    start_date: date
    end_date: date | None = None
    completed_dates: list[date] = Field(default_factory=list)
    days_of_week: list[int] | None = None
    specific_day_of_month: int | None = Field(default=None, ge=1, le=31)
    repeat_monthly: bool | None = None
    archived: bool | None = None
    archive_date: date | None = None
    hidden: bool | None = None
    plugins: list[PluginHabit] | None = None
    plugin_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_date", "end_date", "archive_date", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        # The host sometimes stores full ISO timestamps here
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value

    @field_validator("plugin_data", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def plugin_enabled(self, plugin_id: str) -> bool:
        """True when ``plugin_id`` is listed and enabled on this habit."""
        return any(p.id == plugin_id and p.enabled for p in self.plugins or [])
