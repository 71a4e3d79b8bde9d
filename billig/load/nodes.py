"""Concrete syntax tree of a billig source file.

The parser keeps the year/month/day nesting of the source. Dates of day
blocks are already validated; everything else (templates, spans, periods) is
kept in its declarative form until the program is compiled.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date

from billig.domain.models import Clause
from billig.domain.templates import Invocation, TemplateDef
from billig.errors import SourceLocation


@dataclass(frozen=True)
class PlainEntry:
    """Entry written out clause by clause."""

    date: date
    clauses: tuple[Clause, ...]
    location: SourceLocation | None = None


@dataclass(frozen=True)
class InvocationEntry:
    """Entry produced by invoking a template."""

    date: date
    invocation: Invocation

    @property
    def location(self) -> SourceLocation | None:
        return self.invocation.location


EntryNode = PlainEntry | InvocationEntry


@dataclass(frozen=True)
class DayBlock:
    date: date
    entries: tuple[EntryNode, ...]
    location: SourceLocation | None = None


@dataclass(frozen=True)
class MonthBlock:
    year: int
    month: int
    days: tuple[DayBlock, ...]
    location: SourceLocation | None = None


@dataclass(frozen=True)
class YearBlock:
    year: int
    months: tuple[MonthBlock, ...]
    location: SourceLocation | None = None


@dataclass(frozen=True)
class ImportStmt:
    """``import <path>;`` as written, not yet resolved."""

    path: str
    location: SourceLocation | None = None


TopLevel = YearBlock | TemplateDef | ImportStmt
Statement = TemplateDef | ImportStmt | PlainEntry | InvocationEntry


@dataclass(frozen=True)
class SourceTree:
    """All top-level items of one file, in source order."""

    path: str | None
    items: tuple[TopLevel, ...]

    def statements(self) -> Iterator[Statement]:
        """Flatten the tree into definitions, imports and entries, in source order."""
        for item in self.items:
            if isinstance(item, YearBlock):
                for month in item.months:
                    for day in month.days:
                        yield from day.entries
            else:
                yield item

    @property
    def definitions(self) -> list[TemplateDef]:
        return [item for item in self.items if isinstance(item, TemplateDef)]

    @property
    def imports(self) -> list[ImportStmt]:
        return [item for item in self.items if isinstance(item, ImportStmt)]
