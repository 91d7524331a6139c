"""
Recurrence schedule arithmetic for recurring transaction templates.
"""

import calendar
from datetime import date, timedelta

from fundledger.app.models.enums import RecurrencePattern


def add_months(current: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = current.month - 1 + months
    year = current.year + month_index // 12
    month = month_index % 12 + 1
    day = min(current.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_occurrence(current: date, pattern: str) -> date:
    """
    Next scheduled date after current.

    Unknown patterns fall back to monthly.
    """
    try:
        recurrence = RecurrencePattern(str(pattern).lower())
    except ValueError:
        recurrence = RecurrencePattern.MONTHLY

    if recurrence == RecurrencePattern.DAILY:
        return current + timedelta(days=1)
    if recurrence == RecurrencePattern.WEEKLY:
        return current + timedelta(days=7)
    if recurrence == RecurrencePattern.BIWEEKLY:
        return current + timedelta(days=14)
    if recurrence == RecurrencePattern.QUARTERLY:
        return add_months(current, 3)
    if recurrence == RecurrencePattern.YEARLY:
        return add_months(current, 12)
    return add_months(current, 1)
