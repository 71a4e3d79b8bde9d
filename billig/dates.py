"""Date utilities for billig.

Pure functions for date validation, formatting and calendar arithmetic.
Dates are plain ``datetime.date`` values restricted to the years 2000..3000.
"""

import calendar
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from billig.errors import InvalidDateError

MIN_YEAR = 2000
MAX_YEAR = 3000

MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
FULL_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def days_in_month(year: int, month: int) -> int:
    """Number of days in a month, leap years included."""
    return calendar.monthrange(year, month)[1]


def parse_month(name: str) -> int:
    """Convert a month marker to its number (1..12).

    Accepts the 3-letter abbreviation or any longer prefix of the full
    English month name, so ``Sep``, ``Sept`` and ``September`` are all valid.

    Args:
        name: Title-cased month name.

    Returns:
        Month number.

    Raises:
        InvalidDateError: If the name does not designate a month.
    """
    if len(name) >= 3:
        for number, full_name in enumerate(FULL_MONTH_NAMES, start=1):
            if full_name.startswith(name):
                return number
    raise InvalidDateError(f"'{name}' is not a valid month", hints=["months are 'Jan', 'Feb', ..., 'Dec'"])


def make_date(year: int, month: int, day: int) -> date:
    """Validate year-month-day into a date.

    Raises:
        InvalidDateError: If the year is outside of the supported range or the
            day does not exist in that month.
    """
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidDateError(
            f"{year} is outside of the supported range for years",
            hints=[f"year should be between {MIN_YEAR} and {MAX_YEAR} inclusive"],
        )
    name = MONTH_NAMES[month - 1]
    if day < 1 or day > 31:
        raise InvalidDateError(f"{day} is not a valid day", hints=[f"{day} is not in the range 1 ..= 31"])
    length = days_in_month(year, month)
    if day > length:
        if month == 2 and day == 29:
            raise InvalidDateError(
                f"{year} is not bissextile, Feb 29 does not exist",
                hints=[f"did you mean {year}-Feb-28 or {year}-Mar-01 ?"],
            )
        raise InvalidDateError(
            f"{name} is a short month, it does not have a {day}th day",
            hints=[f"{name} is only {length} days long"],
        )
    return date(year, month, day)


def format_month(d: date) -> str:
    """3-letter month abbreviation of a date (e.g. "Dec")."""
    return MONTH_NAMES[d.month - 1]


def format_weekday(d: date) -> str:
    """3-letter weekday abbreviation of a date (e.g. "Sun")."""
    return WEEKDAY_NAMES[d.weekday()]


def format_date(d: date) -> str:
    """Format a date as YYYY-Mmm-DD (e.g. "2020-Dec-05")."""
    return f"{d.year}-{format_month(d)}-{d.day:02}"


def add_days(d: date, count: int) -> date:
    return d + timedelta(days=count)


def add_months(d: date, count: int) -> date:
    """Jump ``count`` months before/after a date.

    The day is truncated to fit in the target month: adding one month to
    2000-Jan-31 gives 2000-Feb-29.

    Raises:
        ValueError: If the result falls outside of the years ``datetime`` supports.
    """
    return d + relativedelta(months=count)


def add_years(d: date, count: int) -> date:
    """Jump ``count`` years, truncating Feb 29 to Feb 28 on non-leap years."""
    return d + relativedelta(years=count)


def start_of_week(d: date) -> date:
    """Monday of the week containing the date."""
    return d - timedelta(days=d.weekday())


def month_range(year: int, month: int) -> tuple[date, date]:
    """Calculate the half-open date range of a month.

    Args:
        year: Year of interest.
        month: Month number (1..12).

    Returns:
        Tuple of (since, until) where:
        - since: First day of month
        - until: First day of next month
    """
    since = date(year, month, 1)
    next_month = (since.replace(day=28) + timedelta(days=4)).replace(day=1)
    return since, next_month


def year_range(year: int) -> tuple[date, date]:
    """Half-open date range of a whole year."""
    return date(year, 1, 1), date(year + 1, 1, 1)
