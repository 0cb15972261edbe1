"""Host entity store seam.

The host application owns habit persistence.  Plugins see it only through
``HabitStore``: fetch the current habit, then hand back partial fields.
``InMemoryHabitStore`` is the reference implementation used in tests and by
embedders without their own store.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from habitcycle.models.habits import Habit

logger = logging.getLogger("habitcycle.plugins.store")


class HabitNotFoundError(KeyError):
    """Raised when a habit id is not known to the store."""


class HabitStore(Protocol):
    def get_habit(self, habit_id: str) -> Habit: ...

    def apply_partial_update(self, habit_id: str, partial_fields: dict[str, Any]) -> Habit: ...


class InMemoryHabitStore:
    """Dict-backed habit store with last-write-wins partial updates.

    Usage::

        store = InMemoryHabitStore([habit])
        store.apply_partial_update(habit.id, {"plugin_data": new_bag})
        store.get_habit(habit.id).plugin_data
    """

    def __init__(self, habits: list[Habit] | None = None) -> None:
        self._habits: dict[str, Habit] = {h.id: h for h in habits or []}
        self._lock = threading.Lock()

    def add(self, habit: Habit) -> None:
        with self._lock:
            self._habits[habit.id] = habit

    def get_habit(self, habit_id: str) -> Habit:
        try:
            return self._habits[habit_id]
        except KeyError:
            raise HabitNotFoundError(habit_id) from None

    def apply_partial_update(self, habit_id: str, partial_fields: dict[str, Any]) -> Habit:
        """Replace the given top-level fields of a habit.

        Field names may be snake_case or the host's camelCase.  The update is
        validated as a whole habit before it is stored.

        Raises:
            HabitNotFoundError: Unknown ``habit_id``.
            pydantic.ValidationError: The merged habit is invalid.
        """
        with self._lock:
            current = self._habits.get(habit_id)
            if current is None:
                raise HabitNotFoundError(habit_id)
            data = current.model_dump(by_alias=False)
            for key, value in partial_fields.items():
                field_name = _field_name(key)
                data[field_name] = value
            updated = Habit.model_validate(data)
            self._habits[habit_id] = updated

        logger.info(
            "Applied partial update to habit %s: %s",
            habit_id,
            ", ".join(sorted(partial_fields)),
        )
        return updated

    def __len__(self) -> int:
        return len(self._habits)


def _field_name(key: str) -> str:
    for name, info in Habit.model_fields.items():
        if key in (name, info.alias):
            return name
    raise KeyError(f"Habit has no field {key!r}")
