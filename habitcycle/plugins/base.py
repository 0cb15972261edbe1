"""Plugin records and the plugin registry.

A plugin is an explicit record of metadata plus the capabilities it offers.
Capabilities are fixed when the plugin is registered; callers ask the
registry which plugins provide one instead of probing plugin objects for
optional hooks on every render.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from habitcycle.engine.overlay import EventTag
    from habitcycle.models.habits import Habit
    from habitcycle.plugins.store import HabitStore

logger = logging.getLogger("habitcycle.plugins.registry")

PREDICTION = "prediction"
NOTES = "notes"


class PluginDataError(ValueError):
    """Raised when a plugin's namespace value does not match its schema."""

    def __init__(self, plugin_id: str, detail: str) -> None:
        self.plugin_id = plugin_id
        super().__init__(f"Invalid data under plugin namespace {plugin_id!r}: {detail}")


class PluginRegistrationError(ValueError):
    """Raised on duplicate or malformed plugin registration."""


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class PredictionCapability(Protocol):
    """Cycle prediction overlay for habit cards and calendars."""

    def event_map_for(self, habit: Habit) -> Mapping[date, frozenset[EventTag]]: ...

    def day_indicator(self, habit: Habit, day: date) -> EventTag | None: ...


class NoteCapability(Protocol):
    """Per-day free-text notes on a habit."""

    def note_for(self, habit: Habit, day: date) -> str: ...

    def save_note(self, store: HabitStore, habit_id: str, day: date, text: str) -> Habit: ...


# ---------------------------------------------------------------------------
# Plugin record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PluginMetadata:
    """Display metadata shown by the host's plugin picker."""

    name: str
    description: str
    version: str
    settings: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Plugin:
    """A registered plugin.

    Attributes:
        id:         Namespace key the plugin owns in ``habit.plugin_data``.
        metadata:   Name, description, version, default settings.
        prediction: Cycle prediction capability, if offered.
        notes:      Notes capability, if offered.
    """

    id: str
    metadata: PluginMetadata
    prediction: PredictionCapability | None = None
    notes: NoteCapability | None = None

    @property
    def capabilities(self) -> frozenset[str]:
        caps = set()
        if self.prediction is not None:
            caps.add(PREDICTION)
        if self.notes is not None:
            caps.add(NOTES)
        return frozenset(caps)


class PluginRegistry:
    """Registry of plugins keyed by id.

    Usage::

        registry = PluginRegistry()
        registry.register(cycle_plugin.build_plugin())
        registry.register(notes_plugin.build_plugin())

        for plugin in registry.with_capability(PREDICTION):
            plugin.prediction.day_indicator(habit, day)
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}

    def register(self, plugin: Plugin) -> None:
        """Add a plugin.

        Raises:
            PluginRegistrationError: Empty id or an id already registered.
        """
        if not plugin.id:
            raise PluginRegistrationError("Plugin id must not be empty")
        if plugin.id in self._plugins:
            raise PluginRegistrationError(f"Plugin {plugin.id!r} is already registered")
        self._plugins[plugin.id] = plugin
        logger.debug(
            "Registered plugin %s v%s (capabilities=%s)",
            plugin.id,
            plugin.metadata.version,
            ",".join(sorted(plugin.capabilities)) or "none",
        )

    def get(self, plugin_id: str) -> Plugin | None:
        return self._plugins.get(plugin_id)

    def with_capability(self, capability: str) -> list[Plugin]:
        return [p for p in self._plugins.values() if capability in p.capabilities]

    def __iter__(self) -> Iterator[Plugin]:
        return iter(self._plugins.values())

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._plugins
