"""Cycle prediction and calendar overlay engine.

Modules:
    config_loader - Load/validate/hot-reload cycle_config.yaml
    dates         - Calendar-day normalization and arithmetic
    prediction    - Chained cycle predictions from a start date and parameters
    overlay       - Day → event tag projection and month grids
"""

from habitcycle.engine.config_loader import (
    CycleBounds,
    CycleConfig,
    FertileWindowOffsets,
    get_cycle_config,
)
from habitcycle.engine.overlay import (
    EventTag,
    build_event_map,
    classify,
    month_grid,
    primary_tag,
)
from habitcycle.engine.prediction import (
    CycleParameters,
    CyclePrediction,
    CyclePredictionEngine,
    FertileWindow,
    FieldError,
    ValidationError,
    generate_predictions,
)

__all__ = [
    "CycleBounds",
    "CycleConfig",
    "FertileWindowOffsets",
    "get_cycle_config",
    "EventTag",
    "build_event_map",
    "classify",
    "month_grid",
    "primary_tag",
    "CycleParameters",
    "CyclePrediction",
    "CyclePredictionEngine",
    "FertileWindow",
    "FieldError",
    "ValidationError",
    "generate_predictions",
]
