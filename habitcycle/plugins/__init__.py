"""Habit plugins and the shared plugin-data bag.

Modules:
    data_bag      - Namespaced partial updates of ``habit.plugin_data``
    base          - Plugin records, capabilities, registry
    store         - Host habit store protocol + in-memory implementation
    cycle_plugin  - Cycle tracker: settings form, predictions, day indicator
    notes_plugin  - Per-day notes
"""

from habitcycle.plugins import cycle_plugin, notes_plugin
from habitcycle.plugins.base import (
    NOTES,
    PREDICTION,
    Plugin,
    PluginDataError,
    PluginMetadata,
    PluginRegistrationError,
    PluginRegistry,
)
from habitcycle.plugins.data_bag import merge_namespace, read_namespace, remove_namespace
from habitcycle.plugins.store import HabitNotFoundError, HabitStore, InMemoryHabitStore


def default_registry() -> PluginRegistry:
    """Registry holding the bundled cycle tracker and notes plugins."""
    registry = PluginRegistry()
    registry.register(cycle_plugin.build_plugin())
    registry.register(notes_plugin.build_plugin())
    return registry


__all__ = [
    "NOTES",
    "PREDICTION",
    "Plugin",
    "PluginDataError",
    "PluginMetadata",
    "PluginRegistrationError",
    "PluginRegistry",
    "merge_namespace",
    "read_namespace",
    "remove_namespace",
    "HabitNotFoundError",
    "HabitStore",
    "InMemoryHabitStore",
    "default_registry",
]
