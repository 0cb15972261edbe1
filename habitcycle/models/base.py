"""Shared Pydantic base models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class HabitCycleBase(BaseModel):
    """Base model for everything that crosses the host boundary.

    The host speaks camelCase JSON; Python code uses snake_case.  Both are
    accepted on input and ``to_json_value`` emits camelCase.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_json_value(self) -> dict[str, Any]:
        """JSON-compatible dict in the host's camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
