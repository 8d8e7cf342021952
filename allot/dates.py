"""Date utilities for allot.

Pure functions for calendar month arithmetic.
"""

import calendar
from datetime import date


def add_months(start: date, months: int, day: int | None = None) -> date:
    """Move a date by whole calendar months.

    The day is clamped to the last day of the target month, so Jan 31 plus
    one month is Feb 28 (or 29), and Jan 31 plus two months is Mar 31.

    Args:
        start: Anchor date.
        months: Number of months to add (may be negative).
        day: Day of month to aim for instead of start.day. Lets a date that
            was already clamped (Feb 28) get back to its real day (31).

    Returns:
        The shifted date.
    """
    month_index = start.year * 12 + (start.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    target_day = start.day if day is None else day
    return date(year, month, min(target_day, calendar.monthrange(year, month)[1]))


def count_due_cycles(due: date, today: date, day: int | None = None) -> int:
    """Count monthly cycles that fell due on or before today.

    Args:
        due: First due date.
        today: Current date.
        day: Anchor day of month for the following cycles (see add_months).

    Returns:
        Number k such that due + (k - 1) months <= today < due + k months,
        or 0 when due is after today.
    """
    if due > today:
        return 0
    cycles = (today.year - due.year) * 12 + (today.month - due.month)
    # Month difference can overshoot by one when today's day is earlier
    while add_months(due, cycles, day) <= today:
        cycles += 1
    while cycles > 1 and add_months(due, cycles - 1, day) > today:
        cycles -= 1
    return cycles


def parse_date(value: str) -> date:
    """Parse an ISO (YYYY-MM-DD) date.

    Raises:
        ValueError: If the text is not a valid ISO date.
    """
    return date.fromisoformat(value.strip())
