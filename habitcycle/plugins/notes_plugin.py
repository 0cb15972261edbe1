"""Notes plugin: one free-text note per habit per day.

The namespace value is a list of ``{"text": ..., "noteDate": "YYYY-MM-DD"}``
entries.  Saving a note for a day replaces any earlier entry for that day.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from habitcycle.engine.config_loader import CycleConfig, get_cycle_config
from habitcycle.engine.dates import to_calendar_date
from habitcycle.models.habits import Habit
from habitcycle.models.plugin_data import NoteEntry, NoteList
from habitcycle.plugins.base import Plugin, PluginDataError, PluginMetadata
from habitcycle.plugins.data_bag import merge_namespace, partial_update_for, read_namespace
from habitcycle.plugins.store import HabitStore

logger = logging.getLogger("habitcycle.plugins.notes")

PLUGIN_ID = "core-notes"
PLUGIN_VERSION = "1.0.0"


class NoteTooLongError(ValueError):
    """Raised when a note exceeds the configured maximum length."""


def note_entries(bag: Mapping[str, Any] | None) -> list[NoteEntry]:
    """Parse the notes namespace of ``bag`` (empty list when absent).

    Raises:
        PluginDataError: If the stored value is not a list of note entries.
    """
    raw = read_namespace(bag, PLUGIN_ID, [])
    try:
        return NoteList.validate_python(raw)
    except SchemaValidationError as exc:
        raise PluginDataError(PLUGIN_ID, str(exc)) from exc


def note_on(bag: Mapping[str, Any] | None, day: date | datetime) -> str:
    target = to_calendar_date(day)
    for entry in note_entries(bag):
        if entry.note_date == target:
            return entry.text
    return ""


def with_note(bag: Mapping[str, Any] | None, day: date | datetime, text: str) -> dict[str, Any]:
    """Return a new bag whose notes namespace holds ``text`` for ``day``.

    Other days' notes keep their order; the new entry goes last.
    """
    target = to_calendar_date(day)
    entries = [e for e in note_entries(bag) if e.note_date != target]
    entries.append(NoteEntry(text=text, note_date=target))
    value = NoteList.dump_python(entries, mode="json", by_alias=True)
    return merge_namespace(bag, PLUGIN_ID, value)


class NotesPlugin:
    """Note capability over the notes namespace."""

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    @property
    def max_length(self) -> int:
        return self._config.notes.max_length

    def note_for(self, habit: Habit, day: date | datetime) -> str:
        try:
            return note_on(habit.plugin_data, day)
        except PluginDataError as exc:
            logger.warning("Habit %s: %s", habit.id, exc)
            return ""

    def save_note(
        self, store: HabitStore, habit_id: str, day: date | datetime, text: str
    ) -> Habit:
        """Store ``text`` as the note for ``day`` on the habit.

        Raises:
            NoteTooLongError: ``text`` is longer than ``notes.max_length``.
            PluginDataError:  The existing notes value is corrupt.
        """
        if len(text) > self.max_length:
            raise NoteTooLongError(
                f"Note is {len(text)} characters; the limit is {self.max_length}"
            )
        current = store.get_habit(habit_id)
        bag = with_note(current.plugin_data, day, text)
        logger.debug("Saving note for habit %s on %s", habit_id, to_calendar_date(day))
        return store.apply_partial_update(habit_id, partial_update_for(bag))


def build_plugin(config: CycleConfig | None = None) -> Plugin:
    notes = NotesPlugin(config)
    return Plugin(
        id=PLUGIN_ID,
        metadata=PluginMetadata(
            name="Notes",
            description="Add notes and reflections to your habit completions",
            version=PLUGIN_VERSION,
            settings={"enabled": True, "maxLength": notes.max_length},
        ),
        notes=notes,
    )
