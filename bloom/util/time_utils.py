from datetime import datetime, timezone
from typing import Optional


def iso_format_z(datetime_obj: datetime, timespec: str = "milliseconds") -> str:
    """
    Format a datetime as an ISO 8601 timestamp. Includes the Z for clarity that it is UTC.

    Example with milliseconds: 2015-09-12T08:41:12.397Z
    Example with seconds: 2015-09-12T08:41:12Z
    """
    return datetime_obj.astimezone(timezone.utc).isoformat(timespec=timespec).replace("+00:00", "Z")


def now_iso() -> str:
    """
    The current time as a UTC ISO 8601 timestamp, the format used in document files.
    """
    return iso_format_z(datetime.now(timezone.utc))


def parse_iso(timestamp: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp, treating naive values as UTC. Returns None if the
    value isn't a valid timestamp.
    """
    try:
        dt = datetime.fromisoformat(timestamp)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


## Tests


def test_iso_format_z():
    dt = datetime(2026, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)
    assert iso_format_z(dt) == "2026-01-02T03:04:05.678Z"
    assert iso_format_z(dt, timespec="seconds") == "2026-01-02T03:04:05Z"


def test_parse_iso():
    dt = parse_iso("2026-01-01T00:00:00.000Z")
    assert dt == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert parse_iso("2026-01-01T00:00:00") == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert parse_iso("yesterday") is None
    assert parse_iso("") is None
    assert now_iso().endswith("Z")
