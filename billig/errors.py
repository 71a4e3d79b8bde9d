"""Structured errors raised while loading a billig source tree.

Every failure is terminal for the file (and the import subtree) in which it
occurs. Errors carry the position of the offending text and, for template and
import errors, the chain of invocations/imports that led to it, so the CLI can
point at the exact source without re-parsing anything.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Self


@dataclass(frozen=True)
class SourceLocation:
    """Position in a source file (1-based line and column)."""

    path: str | None
    line: int
    column: int

    def __str__(self) -> str:
        path = self.path if self.path is not None else "<text>"
        return f"{path}:{self.line}:{self.column}"


class BilligError(Exception):
    """Base class for all loading errors."""

    kind = "error"

    def __init__(
        self,
        message: str,
        location: SourceLocation | None = None,
        hints: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.hints = list(hints or [])
        # outermost first
        self.chain: list[SourceLocation] = []

    def locate(self, location: SourceLocation) -> Self:
        """Attach a location if the error does not have one yet."""
        if self.location is None:
            self.location = location
        return self

    def add_context(self, location: SourceLocation) -> Self:
        """Record an enclosing import or invocation site."""
        self.chain.insert(0, location)
        return self

    def __str__(self) -> str:
        lines = [self.message]
        if self.location is not None:
            lines.append(f"  --> {self.location}")
        lines.extend(f"  hint: {hint}" for hint in self.hints)
        for site in reversed(self.chain):
            lines.append(f"  from {site}")
        return "\n".join(lines)


class BilligSyntaxError(BilligError):
    """Source text does not match the grammar."""

    kind = "syntax"

    def __init__(self, expected: str, location: SourceLocation | None = None, found: str | None = None) -> None:
        message = f"expected {expected}"
        if found is not None:
            message += f", found {found}"
        super().__init__(message, location)
        self.expected = expected
        self.found = found


class InvalidDateError(BilligError):
    """A date (or partial date) that does not exist or is out of range."""

    kind = "invalid-date"


class UnknownBlockStructureError(BilligError):
    """A marker or entry appears at a nesting level where it cannot be."""

    kind = "block-structure"


class TemplateRedefinitionError(BilligError):
    """A template name is registered twice in the same namespace."""

    kind = "template-redefinition"


class TemplateBindingError(BilligError):
    """Invocation arguments do not match the template signature."""

    kind = "template-binding"


class UnknownTemplateError(TemplateBindingError):
    """Invocation of a template that is not visible in the namespace."""

    kind = "unknown-template"


class UnresolvedPlaceholderError(BilligError):
    """A template body refers to a parameter that is not declared."""

    kind = "unresolved-placeholder"


class BuiltinTypeMismatchError(BilligError):
    """A builtin or clause received money where text was needed, or the reverse."""

    kind = "type-mismatch"


class ImportNotFoundError(BilligError):
    """An imported (or root) file cannot be read."""

    kind = "import-not-found"

    def __init__(self, path: Path, location: SourceLocation | None = None) -> None:
        super().__init__(f"cannot read '{path}'", location, hints=["check the path relative to the importing file"])
        self.path = path


class ImportCycleError(BilligError):
    """A file transitively imports itself."""

    kind = "import-cycle"

    def __init__(self, cycle: list[Path], location: SourceLocation | None = None) -> None:
        names = " -> ".join(str(path) for path in cycle)
        super().__init__(f"import cycle: {names}", location)
        self.cycle = cycle


class InvertedPeriodError(BilligError):
    """A period whose end resolves before (or at) its start."""

    kind = "inverted-period"
