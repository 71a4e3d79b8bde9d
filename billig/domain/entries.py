"""Pure functions assembling resolved entries.

This module contains the functional core for entry construction:
- No I/O operations
- No side effects
- Clauses in, one immutable Entry out

All monetary amounts are in cents (Money type).
"""

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Protocol, TypeVar

from billig.domain.models import (
    CategoryName,
    Clause,
    ClauseKind,
    DateRange,
    Duration,
    Entry,
    Money,
    Span,
)
from billig.domain.periods import resolve_period, resolve_span
from billig.errors import BilligError, BilligSyntaxError, SourceLocation

# What to suggest when a clause is missing
CLAUSE_EXAMPLES = {
    "val": "'val 42.69'",
    "type": "'type Food'",
    "tag": "'tag \"Some information\"'",
}


class Slotted(Protocol):
    """Anything filling an entry field: a clause or an unevaluated template clause."""

    @property
    def kind(self) -> ClauseKind: ...

    @property
    def location(self) -> SourceLocation | None: ...


S = TypeVar("S", bound=Slotted)


def parse_money(text: str) -> Money:
    """Convert a decimal literal with at most two fractional digits to cents.

    Args:
        text: Literal such as "-300", "69.42" or "0.5".

    Returns:
        Amount in cents.
    """
    return Money(int(Decimal(text) * 100))


def format_money(amount: Money) -> str:
    """Format an amount in cents for display (e.g. "-69.42")."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{abs(amount) // 100}.{abs(amount) % 100:02}"


def materialize(value: Money, category: CategoryName, range_: DateRange, tag: str) -> Entry:
    """Build the canonical output record.

    Raises:
        TypeError: If a field has the wrong type.
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"entry value must be an amount in cents, got {value!r}")
    if not isinstance(category, str) or not category:
        raise TypeError(f"entry category must be a name, got {category!r}")
    if not isinstance(tag, str):
        raise TypeError(f"entry tag must be text, got {tag!r}")
    if not isinstance(range_, DateRange):
        raise TypeError(f"entry range must be a DateRange, got {range_!r}")
    return Entry(value=value, category=category, tag=tag, range=range_)


def resolve_range(clause: Clause | None, anchor: date) -> DateRange:
    """Resolve the span or period clause of an entry; defaults to the anchor day."""
    if clause is None:
        return resolve_span(anchor, Span(Duration.DAY))
    try:
        if clause.kind is ClauseKind.SPAN:
            return resolve_span(anchor, clause.value)  # type: ignore[arg-type]
        return resolve_period(anchor, clause.value)  # type: ignore[arg-type]
    except BilligError as err:
        if clause.location is not None:
            err.locate(clause.location)
        raise


def collect_slots(clauses: Iterable[S], location: SourceLocation | None = None) -> dict[str, S]:
    """Group clauses by the entry field they fill.

    Raises:
        BilligSyntaxError: If two clauses fill the same field.
    """
    slots: dict[str, S] = {}
    for clause in clauses:
        slot = clause.kind.slot
        if slot in slots:
            err = BilligSyntaxError(
                f"a single '{slot}' clause",
                clause.location or location,
                found=f"a second '{clause.kind}' clause",
            )
            err.hints.append("each field may only be defined once")
            raise err
        slots[slot] = clause
    return slots


def missing_clause(slots: Mapping[str, object], location: SourceLocation | None = None) -> BilligSyntaxError | None:
    """Report the first mandatory clause absent from ``slots``, if any."""
    for slot, example in CLAUSE_EXAMPLES.items():
        if slot not in slots:
            err = BilligSyntaxError(f"a '{slot}' clause", location, found="end of entry")
            err.hints.append(f"add the missing field, e.g. {example}")
            return err
    return None


def assemble(clauses: Iterable[Clause], anchor: date, location: SourceLocation | None = None) -> Entry:
    """Turn the clauses of one statement into an entry.

    Args:
        clauses: Clauses of a plain entry or of an expanded template.
        anchor: Date of the enclosing day block.
        location: Position of the statement, for error reporting.

    Returns:
        The materialized entry.

    Raises:
        BilligSyntaxError: On a duplicate or missing clause.
        InvalidDateError: If a period bound does not exist.
        InvertedPeriodError: If a period ends before it starts.
    """
    slots = collect_slots(clauses, location)
    err = missing_clause(slots, location)
    if err is not None:
        raise err
    return materialize(
        Money(slots["val"].value),  # type: ignore[arg-type]
        CategoryName(slots["type"].value),  # type: ignore[arg-type]
        resolve_range(slots.get("range"), anchor),
        str(slots["tag"].value),
    )
