"""Interview rounds, eligible dates and time-slot tables.

Dates are literal: nothing outside these tables is ever schedulable.
Each round has one canonical slot table shared by the scheduler and the
calendar editor.
"""
from datetime import date, datetime

from ..errors import InvalidRoundError

ROUND_ONE = "one"  # group interview
ROUND_TWO = "two"  # individual interview
ROUNDS = (ROUND_ONE, ROUND_TWO)

ROUND_LABELS = {
    ROUND_ONE: "Group Interview",
    ROUND_TWO: "Individual Interview",
}

ELIGIBLE_DATES = {
    ROUND_ONE: frozenset({
        date(2025, 9, 3),
        date(2025, 9, 4),
    }),
    ROUND_TWO: frozenset({
        date(2025, 9, 8),
        date(2025, 9, 9),
        date(2025, 9, 10),
        date(2025, 9, 11),
        date(2025, 9, 12),
        date(2025, 9, 15),
        date(2025, 9, 16),
    }),
}

# 12-minute group blocks
ROUND_ONE_SLOTS = (
    '11:05 AM', '11:17 AM', '11:29 AM', '11:41 AM', '11:53 AM',
    '3:00 PM', '3:12 PM', '3:24 PM', '3:36 PM', '3:48 PM',
    '4:00 PM', '4:12 PM', '4:24 PM', '4:36 PM', '4:48 PM',
)

# 8-minute interviews with a 2-minute buffer
ROUND_TWO_SLOTS = (
    '11:05 AM', '11:15 AM', '11:25 AM', '11:35 AM', '11:45 AM', '11:55 AM',
    '3:00 PM', '3:10 PM', '3:20 PM', '3:30 PM', '3:40 PM', '3:50 PM',
    '4:00 PM', '4:10 PM', '4:20 PM', '4:30 PM', '4:40 PM', '4:50 PM',
)

TIME_SLOTS = {
    ROUND_ONE: ROUND_ONE_SLOTS,
    ROUND_TWO: ROUND_TWO_SLOTS,
}

ROUND_TWO_CAPACITY = 1


def check_round(round_):
    if round_ not in ROUNDS:
        raise InvalidRoundError(f"unknown interview round: {round_!r}")
    return round_


def coerce_date(value):
    """Accept a date, a datetime or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        # the whole string must parse; trailing text is a ValueError
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    raise TypeError(f"cannot interpret {value!r} as a date")


def eligible_dates(round_):
    return sorted(ELIGIBLE_DATES[check_round(round_)])
