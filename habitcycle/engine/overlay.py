"""Calendar overlay projection.

Turns a set of cycle predictions into a day → tags index that any calendar
grid can be painted from, and builds the month grids themselves.

The projector is total over structurally valid predictions: overlapping
windows union their tags and an inverted fertile window contributes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from enum import Enum

from habitcycle.engine.dates import date_range, first_of_month, to_calendar_date
from habitcycle.engine.prediction import CyclePrediction

logger = logging.getLogger("habitcycle.engine.overlay")


class EventTag(str, Enum):
    period = "period"
    ovulation = "ovulation"
    fertile = "fertile"


# Single-badge display order: a day shows its highest-precedence tag
TAG_PRECEDENCE: tuple[EventTag, ...] = (EventTag.period, EventTag.ovulation, EventTag.fertile)

EventTagMap = Mapping[date, frozenset[EventTag]]

_NO_TAGS: frozenset[EventTag] = frozenset()

SUNDAY = 6
MONDAY = 0


def build_event_map(predictions: Iterable[CyclePrediction]) -> dict[date, frozenset[EventTag]]:
    """Index every tagged day across ``predictions``.

    Args:
        predictions: Cycle predictions in any order.

    Returns:
        Mapping of day → tags.  Days tagged by several predictions carry the
        union of their tags.
    """
    tags: dict[date, set[EventTag]] = {}

    def _tag(day: date, tag: EventTag) -> None:
        tags.setdefault(day, set()).add(tag)

    count = 0
    for prediction in predictions:
        count += 1
        _tag(prediction.cycle_start, EventTag.period)
        _tag(prediction.ovulation_date, EventTag.ovulation)
        for day in date_range(prediction.fertile_window.start, prediction.fertile_window.end):
            _tag(day, EventTag.fertile)

    logger.debug("Projected %d predictions onto %d days", count, len(tags))
    return {day: frozenset(day_tags) for day, day_tags in tags.items()}


def classify(day: date | datetime, event_map: EventTagMap) -> frozenset[EventTag]:
    """Return the tags for ``day`` (empty when the day is untagged)."""
    return event_map.get(to_calendar_date(day), _NO_TAGS)


def primary_tag(tags: Iterable[EventTag]) -> EventTag | None:
    """Pick the tag a single-badge day indicator should show."""
    present = set(tags)
    for tag in TAG_PRECEDENCE:
        if tag in present:
            return tag
    return None


def month_grid(month: date | datetime, week_start: int = SUNDAY) -> list[list[date]]:
    """Build the week rows that fully cover ``month``.

    Args:
        month:      Any day in the target month.
        week_start: ``date.weekday()`` number of the first column
                    (``SUNDAY`` = 6 by default, ``MONDAY`` = 0).

    Returns:
        List of weeks, each exactly 7 consecutive dates.  Leading and trailing
        days from the adjacent months fill out the first and last rows.
    """
    first = first_of_month(month)
    next_month = (first + timedelta(days=32)).replace(day=1)
    last = next_month - timedelta(days=1)

    lead = (first.weekday() - week_start) % 7
    trail = (week_start - 1 - last.weekday()) % 7
    days = list(date_range(first - timedelta(days=lead), last + timedelta(days=trail)))
    return [days[i : i + 7] for i in range(0, len(days), 7)]


def week_start_index(name: str) -> int:
    """Map a configured ``calendar.week_start`` name to a weekday number."""
    return MONDAY if name.lower() == "monday" else SUNDAY
