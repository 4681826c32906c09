import shlex
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from inflect import engine

_inflect = engine()


def fmt_path(path: str | Path, resolve: bool = True) -> str:
    """
    Format a path or filename for display. This quotes it if it contains whitespace.

    :param resolve: If true paths are resolved. If they are within the current working
    directory, they are formatted as relative. Otherwise, they are formatted as absolute.
    """
    if resolve:
        path = Path(path).resolve()
        cwd = Path.cwd().resolve()
        if path.is_relative_to(cwd):
            path = path.relative_to(cwd)
    else:
        path = Path(path)

    return shlex.quote(str(path))


def format_duration(seconds: float) -> str:
    if seconds < 100.0 / 1000.0:
        return f"{seconds * 1000:.2f}ms"
    elif seconds < 1.0:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 100.0:
        return f"{seconds:.2f}s"
    else:
        return f"{seconds:.0f}s"


def fmt_count_items(count: int, name: str = "item") -> str:
    """
    Format a count and a name as a pluralized phrase, e.g. "1 item" or "2 items".
    """
    return f"{count} {_inflect.plural(name, count)}"  # type: ignore


def format_relative_time(dt: datetime, now: Optional[datetime] = None) -> str:
    """
    Format a timestamp as a short label relative to now, as shown in the sidebar:
    "just now", "5 min ago", "3h ago", "Yesterday", "4 days ago", or the date
    for anything older than a week.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    if not now:
        now = datetime.now(timezone.utc)

    diff_seconds = int((now - dt).total_seconds())
    if diff_seconds < 60:
        return "just now"

    diff_minutes = diff_seconds // 60
    if diff_minutes < 60:
        return f"{diff_minutes} min ago"

    diff_hours = diff_minutes // 60
    if diff_hours < 24:
        return f"{diff_hours}h ago"

    diff_days = diff_hours // 24
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"

    return dt.astimezone().strftime("%Y-%m-%d")


## Tests


def test_format_relative_time():
    from datetime import timedelta

    now = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)
    assert format_relative_time(now - timedelta(seconds=30), now) == "just now"
    assert format_relative_time(now + timedelta(minutes=5), now) == "just now"
    assert format_relative_time(now - timedelta(minutes=5), now) == "5 min ago"
    assert format_relative_time(now - timedelta(hours=3, minutes=10), now) == "3h ago"
    assert format_relative_time(now - timedelta(hours=30), now) == "Yesterday"
    assert format_relative_time(now - timedelta(days=4), now) == "4 days ago"
    old = now - timedelta(days=30)
    assert format_relative_time(old, now) == old.astimezone().strftime("%Y-%m-%d")


def test_fmt_count_items():
    assert fmt_count_items(1, "document") == "1 document"
    assert fmt_count_items(3, "document") == "3 documents"


def test_format_duration():
    assert format_duration(0.0123) == "12.30ms"
    assert format_duration(2.5) == "2.50s"
