import math
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# Timestamps are stored as naive UTC; say so on the wire.
UTCDateTime = Annotated[
    datetime,
    PlainSerializer(lambda v: v.isoformat() + ("Z" if v.tzinfo is None else ""), when_used="json"),
]


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, also accepts snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _truncate_minutes(value):
    """Whole minutes from numbers and numeric strings, fraction dropped ("60.5" -> 60)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else value
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except (ValueError, OverflowError):
            return value
    return value


Minutes = Annotated[int, BeforeValidator(_truncate_minutes)]
