from datetime import datetime, timezone
from typing import Optional

from dateutil import parser


def utcnow() -> datetime:
    """Naive UTC now; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_graph_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse Graph timestamps like ``2024-01-04T12:00:00.1234567Z``."""
    if not value:
        return None
    return to_naive_utc(parser.isoparse(value))


def isoformat_utc(value: datetime) -> str:
    return to_naive_utc(value).strftime("%Y-%m-%dT%H:%M:%S")
