"""Domain models and types for billig.

This package contains the functional core:
- Pure functions with no side effects
- No I/O operations
- Easy to test
- Time resolution and template expansion separated from file loading
"""

from billig.domain.models import (
    After,
    Before,
    Between,
    CategoryName,
    Clause,
    ClauseKind,
    DateRange,
    Duration,
    EmptyPeriod,
    Entry,
    Money,
    PartialDate,
    Period,
    Single,
    Span,
    Window,
)

__all__ = [
    "After",
    "Before",
    "Between",
    "CategoryName",
    "Clause",
    "ClauseKind",
    "DateRange",
    "Duration",
    "EmptyPeriod",
    "Entry",
    "Money",
    "PartialDate",
    "Period",
    "Single",
    "Span",
    "Window",
]
