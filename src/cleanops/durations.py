from __future__ import annotations

import re
from typing import Iterable, Optional

from cleanops.models import Frequency

DEFAULT_TASK_MINUTES = 5

_NUMBER = r"(\d+(?:\.\d+)?)"
_HOURS_RE = re.compile(_NUMBER + r"\s*(?:h|hr|hrs|hour|hours)\b", re.I)
_MINUTES_RE = re.compile(
    _NUMBER + r"(?:\s*(?:-|to)\s*" + _NUMBER + r")?\s*(?:m|min|mins|minute|minutes)\b", re.I
)
_HOUR_RANGE_RE = re.compile(_NUMBER + r"\s*(?:-|to)\s*" + _NUMBER + r"\s*(?:h|hr|hrs|hour|hours)\b", re.I)


def parse_duration_minutes(text: Optional[str]) -> Optional[int]:
    """Parse "10-15 minutes", "1 hour", "1h 30m" into minutes.

    Ranges count as their upper bound. Returns None when nothing parses.
    """
    if not text:
        return None
    total = 0.0
    found = False

    hour_range = _HOUR_RANGE_RE.search(text)
    if hour_range:
        total += float(hour_range.group(2)) * 60
        found = True
    else:
        hours = _HOURS_RE.search(text)
        if hours:
            total += float(hours.group(1)) * 60
            found = True

    minutes = _MINUTES_RE.search(text)
    if minutes:
        upper = minutes.group(2) or minutes.group(1)
        total += float(upper)
        found = True

    if not found:
        return None
    return int(round(total))


def estimate_minutes(durations: Iterable[Optional[str]]) -> int:
    """Sum task durations; tasks without a parseable duration count 5 minutes."""
    total = 0
    for d in durations:
        minutes = parse_duration_minutes(d)
        total += minutes if minutes is not None else DEFAULT_TASK_MINUTES
    return total


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes}min"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}min" if rest else f"{hours}h"


def schedule_type(title: str, frequency: Optional[Frequency]) -> str:
    """Display label for a schedule, from title keywords and frequency."""
    t = title.lower()
    if "deep clean" in t or "deep-clean" in t:
        return "Deep Clean"
    if "maintenance" in t or "repair" in t:
        return "Maintenance"
    if "inspection" in t or "check" in t:
        return "Inspection"
    if "daily" in t or frequency == Frequency.DAILY:
        return "Daily Clean"
    if "weekly" in t or frequency == Frequency.WEEKLY:
        return "Weekly Clean"
    if "monthly" in t or frequency == Frequency.MONTHLY:
        return "Monthly Clean"
    if "quarterly" in t or frequency == Frequency.QUARTERLY:
        return "Quarterly Clean"
    return "Standard Clean"
