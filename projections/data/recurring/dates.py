"""
Recurring date generation.

Expands a (start, end, frequency) schedule into concrete dates. Incoming
payments such as salaries land on the next working day when the nominal
date is a weekend or a UK bank holiday; expenses keep their nominal date.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from projections.config import settings
from projections.data.events.models import EventType
from projections.data.recurring.models import RecurrenceFrequency

logger = logging.getLogger(__name__)


# England & Wales bank holidays, substitute days included
UK_BANK_HOLIDAYS = frozenset([
    # 2025
    date(2025, 1, 1),
    date(2025, 4, 18),
    date(2025, 4, 21),
    date(2025, 5, 5),
    date(2025, 5, 26),
    date(2025, 8, 25),
    date(2025, 12, 25),
    date(2025, 12, 26),
    # 2026
    date(2026, 1, 1),
    date(2026, 4, 3),
    date(2026, 4, 6),
    date(2026, 5, 4),
    date(2026, 5, 25),
    date(2026, 8, 31),
    date(2026, 12, 25),
    date(2026, 12, 28),
    # 2027
    date(2027, 1, 1),
    date(2027, 3, 26),
    date(2027, 3, 29),
    date(2027, 5, 3),
    date(2027, 5, 31),
    date(2027, 8, 30),
    date(2027, 12, 27),
    date(2027, 12, 28),
])

# Step between consecutive occurrences
_STEPS = {
    RecurrenceFrequency.DAILY: relativedelta(days=1),
    RecurrenceFrequency.WEEKLY: relativedelta(weeks=1),
    RecurrenceFrequency.MONTHLY: relativedelta(months=1),
    RecurrenceFrequency.QUARTERLY: relativedelta(months=3),
    RecurrenceFrequency.BIANNUAL: relativedelta(months=6),
    RecurrenceFrequency.ANNUAL: relativedelta(years=1),
}


@dataclass(frozen=True)
class RecurringDate:
    """A nominal occurrence and the date it is actually booked on."""
    date: date
    adjusted_date: date

    @property
    def is_adjusted(self) -> bool:
        return self.date != self.adjusted_date


def is_uk_bank_holiday(day: date) -> bool:
    return day in UK_BANK_HOLIDAYS


def is_non_working_day(day: date) -> bool:
    """Saturday, Sunday or a bank holiday."""
    return day.weekday() >= 5 or is_uk_bank_holiday(day)


def adjust_to_next_working_day(
    day: date,
    event_type: EventType,
    max_shift_days: Optional[int] = None,
) -> date:
    """
    Move an incoming payment off non-working days.

    Expenses are due when they are due and are returned unchanged. The shift
    is capped at ``max_shift_days``.
    """
    if event_type != EventType.INCOMING:
        return day

    if max_shift_days is None:
        max_shift_days = settings.WORKING_DAY_MAX_SHIFT

    adjusted = day
    shifted = 0
    while is_non_working_day(adjusted) and shifted < max_shift_days:
        adjusted += timedelta(days=1)
        shifted += 1

    if shifted >= max_shift_days:
        logger.warning(f"Date {day.isoformat()} required {shifted} days adjustment. Using {adjusted.isoformat()}")

    return adjusted


def generate_recurring_dates(
    start_date: date,
    end_date: date,
    frequency: RecurrenceFrequency,
    event_type: EventType,
    max_occurrences: Optional[int] = None,
) -> List[RecurringDate]:
    """
    Generate every occurrence of a schedule from ``start_date`` to ``end_date``.

    The start date is always the first occurrence. Month-based steps are
    measured from the start date, so a rule starting on the 31st lands on the
    last day of shorter months without drifting (Jan 31, Feb 28, Mar 31).

    Args:
        start_date: First occurrence
        end_date: Last day an occurrence may fall on (inclusive)
        frequency: Step between occurrences
        event_type: INCOMING dates are moved to working days
        max_occurrences: Safety cap on the number of dates

    Returns:
        List of RecurringDate, ascending by nominal date
    """
    if max_occurrences is None:
        max_occurrences = settings.RECURRING_MAX_OCCURRENCES

    try:
        step = _STEPS[RecurrenceFrequency(frequency)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported frequency: {frequency}")

    dates: List[RecurringDate] = []
    occurrence = 0
    current = start_date

    while current <= end_date:
        if len(dates) >= max_occurrences:
            logger.warning(
                f"Generated {len(dates)} recurring dates. Stopping to prevent infinite loop."
            )
            break

        dates.append(RecurringDate(
            date=current,
            adjusted_date=adjust_to_next_working_day(current, event_type),
        ))

        occurrence += 1
        current = start_date + step * occurrence

    return dates

