"""Field extractors for day offsets and clock times."""
from __future__ import annotations

import re

UNKNOWN_OFFSET = -1

DAYS_BEFORE_RE = re.compile(r"(\d+)\s*days?\s*(?:before|prior)", re.IGNORECASE)
DAY_NUMBER_RE = re.compile(r"\bday\s*([+-]?\d+)", re.IGNORECASE)
DAYS_AHEAD_RE = re.compile(r"(\d+)\s*days?\s*ahead", re.IGNORECASE)
PROCEDURE_DAY_PHRASES = ("day of procedure", "day of colonoscopy")

# "." also separates minutes ("10.30am"); an hour never starts inside "10.30" or "7:45".
TIME_RE = re.compile(
    r"(?<!\d)(?<!\d[.:])(\d{1,2})(?!\d)(?:[:.](\d{2})(?!\d))?(?:\s*(am|pm)(?![a-z]))?",
    re.IGNORECASE,
)


def _days_before(days: int) -> int:
    return -days if days > 0 else days


def extract_offset(line: str) -> int:
    """Return the day offset relative to the procedure, or ``-1`` if unknown."""
    match = DAYS_BEFORE_RE.search(line)
    if match:
        return _days_before(int(match.group(1)))
    match = DAY_NUMBER_RE.search(line)
    if match:
        return int(match.group(1))
    match = DAYS_AHEAD_RE.search(line)
    if match:
        return _days_before(int(match.group(1)))
    lowered = line.lower()
    if any(phrase in lowered for phrase in PROCEDURE_DAY_PHRASES):
        return 0
    return UNKNOWN_OFFSET


def _to_hours(match: re.Match[str]) -> float:
    hours = int(match.group(1))
    minutes = int(match.group(2)) if match.group(2) else 0
    period = (match.group(3) or "").lower()
    if period == "pm" and hours != 12:
        hours += 12
    if period == "am" and hours == 12:
        hours = 0
    return hours + minutes / 60


def extract_time(line: str) -> float | None:
    """Return the clock time in ``line`` as fractional hours.

    A token with minutes or an am/pm suffix is preferred over a bare number,
    so in ``"2 days before at 6pm"`` the ``6pm`` wins. Bare hours are passed
    through unchanged without clamping to a 24 hour range.
    """
    first_bare: re.Match[str] | None = None
    for match in TIME_RE.finditer(line):
        if match.group(2) or match.group(3):
            return _to_hours(match)
        if first_bare is None:
            first_bare = match
    if first_bare is None:
        return None
    return _to_hours(first_bare)
