"""Pure functions turning spans and periods into concrete date ranges.

This module contains the functional core for time resolution:
- No I/O operations
- No side effects
- Every range is half-open ``[start, end)`` so adjacent ranges tile exactly

Weeks start on Monday. Month and year jumps truncate the day to the length of
the target month.
"""

from datetime import date

from billig.dates import (
    MAX_YEAR,
    MIN_YEAR,
    add_days,
    add_months,
    add_years,
    format_date,
    make_date,
    month_range,
    start_of_week,
    year_range,
)
from billig.domain.models import (
    After,
    Before,
    Between,
    DateRange,
    Duration,
    EmptyPeriod,
    PartialDate,
    Period,
    Single,
    Span,
    Window,
)
from billig.errors import InvalidDateError, InvertedPeriodError

HORIZON_START = date(MIN_YEAR, 1, 1)
HORIZON_END = date(MAX_YEAR + 1, 1, 1)


def granule_start(anchor: date, duration: Duration) -> date:
    """First day of the day/week/month/year containing ``anchor``."""
    if duration is Duration.DAY:
        return anchor
    if duration is Duration.WEEK:
        return start_of_week(anchor)
    if duration is Duration.MONTH:
        return anchor.replace(day=1)
    return anchor.replace(month=1, day=1)


def shift(d: date, duration: Duration, count: int) -> date:
    """Move ``count`` granules forward (or backward when negative)."""
    if duration is Duration.DAY:
        return add_days(d, count)
    if duration is Duration.WEEK:
        return add_days(d, 7 * count)
    if duration is Duration.MONTH:
        return add_months(d, count)
    return add_years(d, count)


def resolve_span(anchor: date, span: Span) -> DateRange:
    """Resolve a span against its anchor date.

    Args:
        anchor: Date of the entry (or invocation).
        span: Duration, window and count.

    Returns:
        Half-open range covering ``span.count`` granules.

    Raises:
        InvalidDateError: If the range leaves the supported years.
    """
    try:
        result = _span_range(anchor, span)
    except (ValueError, OverflowError) as exc:
        raise _past_horizon(anchor, span) from exc
    if result.end > HORIZON_END:
        raise _past_horizon(anchor, span)
    return result


def _past_horizon(anchor: date, span: Span) -> InvalidDateError:
    return InvalidDateError(
        f"span '{span}' from {format_date(anchor)} leaves the supported years {MIN_YEAR}..{MAX_YEAR}",
        hints=["use a smaller count, or a period with an explicit end"],
    )


def _span_range(anchor: date, span: Span) -> DateRange:
    unit, count = span.duration, span.count
    start = granule_start(anchor, unit)

    if span.window is Window.CURR:
        return DateRange(start, shift(start, unit, count))
    if span.window is Window.POST:
        end = shift(anchor, unit, count)
        if unit in (Duration.MONTH, Duration.YEAR) and end.day < anchor.day:
            # day was truncated (e.g. Jan-31 + 1 month): keep the short month whole
            end = add_days(end, 1)
        return DateRange(anchor, end)
    if span.window in (Window.ANTE, Window.PRED):
        return DateRange(shift(start, unit, -count), start)
    following = shift(start, unit, 1)
    return DateRange(following, shift(following, unit, count))


def _bounds(partial: PartialDate, year: int, month: int) -> tuple[date, date]:
    """Range of the granule designated by a partial date.

    Missing high-order components are taken from ``year`` and ``month``.
    """
    year = partial.year if partial.year is not None else year
    if partial.month is None and partial.day is None:
        make_date(year, 1, 1)
        return year_range(year)
    month = partial.month if partial.month is not None else month
    if partial.day is None:
        make_date(year, month, 1)
        return month_range(year, month)
    day = make_date(year, month, partial.day)
    return day, add_days(day, 1)


def lower_bound(anchor: date, partial: PartialDate) -> date:
    """First day designated by a partial date."""
    return _bounds(partial, anchor.year, anchor.month)[0]


def upper_bound(anchor: date, partial: PartialDate) -> date:
    """First day after the granule designated by a partial date."""
    return _bounds(partial, anchor.year, anchor.month)[1]


def resolve_period(anchor: date, period: Period) -> DateRange:
    """Resolve an explicit period against its anchor date.

    Args:
        anchor: Date of the entry (or invocation).
        period: One of After, Before, Between, EmptyPeriod, Single.

    Returns:
        Half-open range. Open ends extend to the supported horizon.

    Raises:
        InvalidDateError: If a bound designates a date that does not exist.
        InvertedPeriodError: If a Between period ends before it starts.
    """
    if isinstance(period, EmptyPeriod):
        return DateRange(anchor, anchor)
    if isinstance(period, After):
        return DateRange(lower_bound(anchor, period.start), HORIZON_END)
    if isinstance(period, Before):
        if period.end is None:
            return DateRange(HORIZON_START, anchor)
        return DateRange(HORIZON_START, upper_bound(anchor, period.end))
    if isinstance(period, Single):
        start, end = _bounds(period.when, anchor.year, anchor.month)
        return DateRange(start, end)

    start = lower_bound(anchor, period.start)
    # the end inherits what it omits from the resolved start
    month = period.start.month if period.start.month is not None else anchor.month
    end = _bounds(period.end, start.year, month)[1]
    if end <= start:
        raise InvertedPeriodError(
            f"period {period.start}..{period.end} ends before it starts",
            hints=["if this is intentional consider using '()' instead"],
        )
    return DateRange(start, end)
