"""
Frequency helpers: mapping free-text phrases to the canonical enum and
calendar-aware due-date arithmetic.
"""

from __future__ import annotations

import calendar
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional

from cleanops.models import Frequency

# Checked in order; bi-weekly must win over weekly and quarterly over monthly.
_PHRASES: list[tuple[Frequency, tuple[str, ...]]] = [
    (Frequency.BIWEEKLY, ("bi-weekly", "biweekly", "bi weekly", "every two weeks", "every 2 weeks", "fortnight")),
    (Frequency.DAILY, ("daily", "every day", "each day", "per day")),
    (Frequency.WEEKLY, ("weekly", "every week", "once a week", "per week")),
    (
        Frequency.QUARTERLY,
        ("quarterly", "every quarter", "every 3 months", "every three months", "three months",
         "after vacancy", "post vacancy", "post-vacancy", "post-infection", "post infection"),
    ),
    (Frequency.MONTHLY, ("monthly", "every month", "once a month", "per month")),
    (Frequency.YEARLY, ("yearly", "annual", "every year", "once a year", "per year")),
]


def map_frequency_phrase(phrase: Optional[str]) -> Optional[Frequency]:
    """Map a detected phrase ("once a week", "Fortnightly", ...) to a Frequency.

    Returns None for empty or unrecognised phrases ("as needed").
    """
    if not phrase:
        return None
    text = phrase.strip().lower()
    if not text:
        return None
    for freq, needles in _PHRASES:
        if any(n in text for n in needles):
            return freq
    return None


def infer_frequency(phrases: Iterable[Optional[str]]) -> Optional[Frequency]:
    """Most common mapped frequency among task phrases (first seen wins ties)."""
    counts: Counter[Frequency] = Counter()
    for p in phrases:
        freq = map_frequency_phrase(p)
        if freq is not None:
            counts[freq] += 1
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _add_months(dt: datetime, months: int) -> datetime:
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def advance(dt: datetime, frequency: Frequency) -> datetime:
    """Move a due date forward by exactly one period of ``frequency``."""
    if frequency == Frequency.DAILY:
        return dt + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return dt + timedelta(days=7)
    if frequency == Frequency.BIWEEKLY:
        return dt + timedelta(days=14)
    if frequency == Frequency.MONTHLY:
        return _add_months(dt, 1)
    if frequency == Frequency.QUARTERLY:
        return _add_months(dt, 3)
    if frequency == Frequency.YEARLY:
        return _add_months(dt, 12)
    raise ValueError(f"Unsupported frequency: {frequency}")
