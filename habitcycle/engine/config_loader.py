"""Load, validate, and hot-reload the habitcycle cycle configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an admin update; no restart required.

Usage::

    from habitcycle.engine.config_loader import get_cycle_config

    config = get_cycle_config()
    config.bounds.max_cycle_length           # 35
    config.fertile_window.days_before        # 5
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("habitcycle.engine.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"

WEEK_STARTS = ("sunday", "monday")


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CycleBounds:
    """Accepted ranges and form defaults for cycle parameters."""

    min_cycle_length: int = 21
    max_cycle_length: int = 35
    default_cycle_length: int = 28
    min_luteal_phase: int = 10
    default_luteal_phase: int = 14
    min_follicular_gap: int = 5
    min_prediction_count: int = 1
    max_prediction_count: int = 12
    default_prediction_count: int = 3

    def max_luteal_phase(self, cycle_length: int) -> int:
        """Largest luteal phase accepted for ``cycle_length``."""
        return cycle_length - self.min_follicular_gap


@dataclass(frozen=True)
class FertileWindowOffsets:
    """Fertile window width, in days around the ovulation day.

    Attributes:
        days_before: Days before ovulation included in the window.
        days_after:  Days after ovulation included in the window.
    """

    days_before: int = 5
    days_after: int = 1


@dataclass(frozen=True)
class CalendarConfig:
    """Month grid settings."""

    week_start: str = "sunday"


@dataclass(frozen=True)
class NotesConfig:
    """Notes plugin settings."""

    max_length: int = 500


@dataclass
class CycleConfig:
    """Complete, validated cycle configuration.

    This is the single in-memory representation of cycle_config.yaml.
    The prediction engine, overlay projector, and plugins read from it.

    Attributes:
        version:        Config schema version string.
        bounds:         Parameter ranges and defaults.
        fertile_window: Fertile window offsets around ovulation.
        calendar:       Month grid settings.
        notes:          Notes plugin settings.
    """

    version: str
    bounds: CycleBounds
    fertile_window: FertileWindowOffsets
    calendar: CalendarConfig
    notes: NotesConfig


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleConfig:
    """Validate the raw YAML dict and construct a CycleConfig.

    Missing optional keys fall back to the dataclass defaults.  Every problem
    is collected before raising so an admin sees all of them at once.

    Raises:
        ConfigValidationError: If any value is missing a sane type or range.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, where: str) -> int:
        value = section.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{where}.{key} must be an integer, got {value!r}")
            return default
        return value

    def _section(key: str) -> dict[str, Any]:
        section = raw.get(key) or {}
        if not isinstance(section, dict):
            errors.append(f"'{key}' must be a mapping")
            return {}
        return section

    version = str(raw.get("version", "1.0"))

    # ── Cycle bounds ──
    c_raw = _section("cycle")
    defaults = CycleBounds()
    bounds = CycleBounds(
        **{
            name: _int(c_raw, name, getattr(defaults, name), "cycle")
            for name in CycleBounds.__dataclass_fields__
        }
    )
    if bounds.min_cycle_length > bounds.max_cycle_length:
        errors.append(
            f"cycle.min_cycle_length ({bounds.min_cycle_length}) exceeds "
            f"cycle.max_cycle_length ({bounds.max_cycle_length})"
        )
    if not bounds.min_cycle_length <= bounds.default_cycle_length <= bounds.max_cycle_length:
        errors.append(
            f"cycle.default_cycle_length = {bounds.default_cycle_length} is outside "
            f"[{bounds.min_cycle_length}, {bounds.max_cycle_length}]"
        )
    if bounds.min_follicular_gap < 0:
        errors.append("cycle.min_follicular_gap must not be negative")
    if not (
        bounds.min_luteal_phase
        <= bounds.default_luteal_phase
        <= bounds.max_luteal_phase(bounds.default_cycle_length)
    ):
        errors.append(
            f"cycle.default_luteal_phase = {bounds.default_luteal_phase} is outside "
            f"[{bounds.min_luteal_phase}, "
            f"{bounds.max_luteal_phase(bounds.default_cycle_length)}]"
        )
    if bounds.min_prediction_count < 1:
        errors.append("cycle.min_prediction_count must be at least 1")
    if not (
        bounds.min_prediction_count
        <= bounds.default_prediction_count
        <= bounds.max_prediction_count
    ):
        errors.append(
            f"cycle.default_prediction_count = {bounds.default_prediction_count} is outside "
            f"[{bounds.min_prediction_count}, {bounds.max_prediction_count}]"
        )

    # ── Fertile window ──
    fw_raw = _section("fertile_window")
    fertile_window = FertileWindowOffsets(
        days_before=_int(fw_raw, "days_before_ovulation", 5, "fertile_window"),
        days_after=_int(fw_raw, "days_after_ovulation", 1, "fertile_window"),
    )
    if fertile_window.days_before < 0 or fertile_window.days_after < 0:
        errors.append("fertile_window offsets must not be negative")

    # ── Calendar ──
    cal_raw = _section("calendar")
    week_start = str(cal_raw.get("week_start", "sunday")).lower()
    if week_start not in WEEK_STARTS:
        errors.append(f"calendar.week_start must be one of {WEEK_STARTS}, got {week_start!r}")
    calendar = CalendarConfig(week_start=week_start)

    # ── Notes ──
    n_raw = _section("notes")
    notes = NotesConfig(max_length=_int(n_raw, "max_length", 500, "notes"))
    if notes.max_length < 1:
        errors.append("notes.max_length must be at least 1")

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleConfig(
        version=version,
        bounds=bounds,
        fertile_window=fertile_window,
        calendar=calendar,
        notes=notes,
    )


def load_cycle_config(path: Path | None = None) -> CycleConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.

    Returns:
        Validated CycleConfig instance.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"Top level of {target} must be a mapping")
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleConfig:
    """Return the global CycleConfig singleton, loading it on first call.

    The path comes from ``HABITCYCLE_CYCLE_CONFIG_PATH`` when set, otherwise
    the bundled YAML.  Thread-safe.
    """
    global _config
    if _config is None:
        from habitcycle.config import get_settings

        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config(get_settings().cycle_config_path)
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleConfig:
    """Reload the cycle config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_cycle_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info(
        "Reloaded cycle config: %s → %s",
        old_version,
        new_config.version,
    )
    return new_config
