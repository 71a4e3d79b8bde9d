"""Domain type definitions for billig.

These NewTypes provide semantic clarity and help with type checking:
- Money: Amount in minor currency units (cents)
- CategoryName: Name of an expense category (e.g. Food, Home, Pay)

The rest of the module holds the immutable value types that flow from the
parser to the resolved entries.
"""

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import NewType

from billig.dates import MONTH_NAMES, format_date
from billig.errors import SourceLocation

# Money amounts are stored as cents (minor units) to avoid floating point errors
Money = NewType("Money", int)

# Open-ended category tag, any uppercase-leading identifier
CategoryName = NewType("CategoryName", str)


class Duration(StrEnum):
    """Granularity of a span."""

    DAY = "Day"
    WEEK = "Week"
    MONTH = "Month"
    YEAR = "Year"


class Window(StrEnum):
    """Position of a span relative to its anchor date."""

    CURR = "Curr"
    POST = "Post"
    ANTE = "Ante"
    PRED = "Pred"
    SUCC = "Succ"


@dataclass(frozen=True)
class Span:
    """Declarative duration + window + count, resolved against an anchor."""

    duration: Duration
    window: Window = Window.CURR
    count: int = 1

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"span count must be positive, got {self.count}")

    def __str__(self) -> str:
        return f"{self.duration}<{self.window}> {self.count}"


@dataclass(frozen=True)
class PartialDate:
    """A date that may leave its year, month or day unspecified."""

    year: int | None = None
    month: int | None = None
    day: int | None = None

    def __post_init__(self) -> None:
        if self.year is None and self.month is None and self.day is None:
            raise ValueError("partial date needs at least one component")
        if self.year is not None and self.month is None and self.day is not None:
            raise ValueError("partial date cannot skip the month")

    def __str__(self) -> str:
        parts = []
        if self.year is not None:
            parts.append(str(self.year))
        if self.month is not None:
            parts.append(MONTH_NAMES[self.month - 1])
        if self.day is not None:
            parts.append(str(self.day))
        return "-".join(parts)


@dataclass(frozen=True)
class After:
    """From a date onwards."""

    start: PartialDate


@dataclass(frozen=True)
class Before:
    """Up to a date (or up to the anchor when ``end`` is omitted)."""

    end: PartialDate | None = None


@dataclass(frozen=True)
class Between:
    """From a date through another, both bounds written inclusively."""

    start: PartialDate
    end: PartialDate


@dataclass(frozen=True)
class EmptyPeriod:
    """Zero-length period at the anchor."""


@dataclass(frozen=True)
class Single:
    """The one day, month or year designated by a partial date."""

    when: PartialDate


Period = After | Before | Between | EmptyPeriod | Single


@dataclass(frozen=True)
class DateRange:
    """Half-open range of dates ``[start, end)``."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"range end {self.end} is before its start {self.start}")

    @property
    def days(self) -> int:
        """Number of days covered."""
        return (self.end - self.start).days

    def __contains__(self, d: object) -> bool:
        return isinstance(d, date) and self.start <= d < self.end

    def __str__(self) -> str:
        return f"[{format_date(self.start)}, {format_date(self.end)})"


class ClauseKind(StrEnum):
    """Keyword of an entry clause."""

    VALUE = "val"
    CATEGORY = "type"
    SPAN = "span"
    PERIOD = "period"
    TAG = "tag"

    @property
    def slot(self) -> str:
        """Entry field filled by the clause; span and period share one."""
        if self in (ClauseKind.SPAN, ClauseKind.PERIOD):
            return "range"
        return self.value


ClauseValue = Money | CategoryName | str | Span | Period


@dataclass(frozen=True)
class Clause:
    """One resolved clause of an entry."""

    kind: ClauseKind
    value: ClauseValue
    location: SourceLocation | None = None


@dataclass(frozen=True)
class Entry:
    """Immutable resolved transaction record."""

    value: Money
    category: CategoryName
    tag: str
    range: DateRange
