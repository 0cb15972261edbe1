"""Pydantic schemas for the host habit entity and plugin namespace values."""

from habitcycle.models.habits import Habit, HabitFrequency, PluginHabit
from habitcycle.models.plugin_data import (
    CyclePluginData,
    CyclePredictionRecord,
    FertileWindowOffsetsRecord,
    FertileWindowRecord,
    NoteEntry,
    NoteList,
)

__all__ = [
    "Habit",
    "HabitFrequency",
    "PluginHabit",
    "CyclePluginData",
    "CyclePredictionRecord",
    "FertileWindowOffsetsRecord",
    "FertileWindowRecord",
    "NoteEntry",
    "NoteList",
]
