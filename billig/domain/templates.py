"""Template registry and expansion.

A template is a named entry blueprint. Its body is a list of clauses whose
values are small expression trees:

- Literal: a constant (money, text, category, span or period)
- ParamRef: ``*name``, the value bound to a parameter
- TimeRef: ``@Year``, ``@Month``, ``@Day``, ``@Weekday``, ``@Date``, derived
  from the invocation date
- BuiltinCall: ``@Neg``, ``@Sum``, ``@Concat`` applied to sub-expressions

Expansion binds the invocation arguments, evaluates every clause and hands the
result to the entry materializer exactly like the clauses of a plain entry.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from types import MappingProxyType

from billig.dates import format_date, format_month, format_weekday
from billig.domain.entries import assemble, format_money
from billig.domain.models import Clause, ClauseKind, ClauseValue, Entry, Money
from billig.errors import (
    BilligError,
    BuiltinTypeMismatchError,
    SourceLocation,
    TemplateBindingError,
    TemplateRedefinitionError,
    UnknownTemplateError,
    UnresolvedPlaceholderError,
)

logger = logging.getLogger(__name__)

# Arguments and defaults are either money (int cents) or text
ArgValue = Money | str


class TimeKind(StrEnum):
    YEAR = "Year"
    MONTH = "Month"
    DAY = "Day"
    WEEKDAY = "Weekday"
    DATE = "Date"


class Builtin(StrEnum):
    NEG = "Neg"
    SUM = "Sum"
    CONCAT = "Concat"


@dataclass(frozen=True)
class Literal:
    value: ClauseValue


@dataclass(frozen=True)
class ParamRef:
    name: str


@dataclass(frozen=True)
class TimeRef:
    kind: TimeKind


@dataclass(frozen=True)
class BuiltinCall:
    op: Builtin
    args: tuple["Expr", ...]


Expr = Literal | ParamRef | TimeRef | BuiltinCall


@dataclass(frozen=True)
class TemplateClause:
    """Unevaluated clause of a template body."""

    kind: ClauseKind
    expr: Expr
    location: SourceLocation | None = None


@dataclass(frozen=True)
class TemplateDef:
    """Immutable template signature and body."""

    name: str
    positional: tuple[str, ...]
    named: tuple[tuple[str, ArgValue], ...]
    body: tuple[TemplateClause, ...]
    location: SourceLocation | None = None

    @property
    def defaults(self) -> dict[str, ArgValue]:
        return dict(self.named)

    def signature(self) -> str:
        """Render the parameter list as written in source."""
        parts = [f"!{self.name}", *self.positional]
        parts.extend(f"{name}={_render_literal(value)}" for name, value in self.named)
        return " ".join(parts)


@dataclass(frozen=True)
class Invocation:
    """Template invocation as written in a day block."""

    name: str
    positional: tuple[ArgValue, ...]
    named: tuple[tuple[str, ArgValue], ...]
    location: SourceLocation | None = None


def _render_literal(value: ArgValue) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return format_money(value)


class TemplateRegistry:
    """Templates visible in one file's namespace."""

    def __init__(self) -> None:
        self._templates: dict[str, TemplateDef] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, name: str) -> TemplateDef | None:
        return self._templates.get(name)

    @property
    def templates(self) -> Mapping[str, TemplateDef]:
        """Read-only view of the namespace."""
        return MappingProxyType(self._templates)

    def register(self, defn: TemplateDef) -> None:
        """Add a template definition.

        Only the parameter list is validated; the body is checked when the
        template is expanded.

        Raises:
            TemplateRedefinitionError: If the name is already registered.
            TemplateBindingError: If a parameter name is declared twice.
        """
        existing = self._templates.get(defn.name)
        if existing is not None:
            err = TemplateRedefinitionError(
                f"template '{defn.name}' is already defined",
                defn.location,
                hints=["rename one of the templates"],
            )
            if existing.location is not None:
                err.add_context(existing.location)
            raise err

        seen: set[str] = set()
        for param in [*defn.positional, *(name for name, _ in defn.named)]:
            if param in seen:
                raise TemplateBindingError(
                    f"parameter '{param}' is declared twice in template '{defn.name}'",
                    defn.location,
                )
            seen.add(param)

        self._templates[defn.name] = defn

    def merge(self, templates: Mapping[str, TemplateDef], location: SourceLocation | None = None) -> None:
        """Make the templates of an imported file visible here.

        Re-exposing the very same definition (diamond imports) is a no-op.
        """
        for name, defn in templates.items():
            if self._templates.get(name) == defn:
                continue
            try:
                self.register(defn)
            except TemplateRedefinitionError as err:
                if location is not None:
                    err.add_context(location)
                raise


def bind_arguments(defn: TemplateDef, invocation: Invocation) -> dict[str, ArgValue]:
    """Build the argument environment of an invocation.

    Args:
        defn: Template being invoked.
        invocation: Arguments as written at the call site.

    Returns:
        Mapping of parameter name to bound literal.

    Raises:
        TemplateBindingError: On positional count mismatch, or on an unknown
            or repeated named argument.
    """
    expected, provided = len(defn.positional), len(invocation.positional)
    if provided != expected:
        if provided > expected:
            hint = f"remove {provided - expected} arguments from the invocation"
        else:
            hint = f"provide the {expected - provided} missing arguments"
        raise TemplateBindingError(
            f"template '{defn.name}' expects {expected} positional arguments, {provided} provided",
            invocation.location,
            hints=[hint],
        )

    env: dict[str, ArgValue] = dict(zip(defn.positional, invocation.positional, strict=True))
    defaults = defn.defaults
    env.update(defaults)

    supplied: set[str] = set()
    for name, value in invocation.named:
        if name not in defaults:
            known = ", ".join(sorted(defaults)) or "none"
            raise TemplateBindingError(
                f"template '{defn.name}' has no named parameter '{name}'",
                invocation.location,
                hints=[f"named parameters: {known}"],
            )
        if name in supplied:
            raise TemplateBindingError(
                f"named argument '{name}' is supplied twice",
                invocation.location,
            )
        supplied.add(name)
        env[name] = value
    return env


def _money_args(op: Builtin, values: Iterable[ClauseValue]) -> list[Money]:
    amounts = []
    for value in values:
        if not isinstance(value, int):
            raise BuiltinTypeMismatchError(
                f"@{op} expects monetary values, got text '{value}'",
                hints=["make it a value", "or remove it from the amount calculation"],
            )
        amounts.append(value)
    return amounts


def _text_args(op: Builtin, values: Iterable[ClauseValue]) -> list[str]:
    texts = []
    for value in values:
        if isinstance(value, int):
            raise BuiltinTypeMismatchError(
                f"@{op} expects text, got the monetary value {_render_literal(value)}",
                hints=['pass the argument as a string, e.g. "42.00"'],
            )
        texts.append(str(value))
    return texts


def format_time(kind: TimeKind, anchor: date) -> str:
    """Render a time reference for the invocation date."""
    if kind is TimeKind.YEAR:
        return str(anchor.year)
    if kind is TimeKind.MONTH:
        return format_month(anchor)
    if kind is TimeKind.DAY:
        return str(anchor.day)
    if kind is TimeKind.WEEKDAY:
        return format_weekday(anchor)
    return format_date(anchor)


def evaluate(expr: Expr, env: Mapping[str, ArgValue], anchor: date) -> ClauseValue:
    """Recursively evaluate a template expression.

    Raises:
        UnresolvedPlaceholderError: If a ParamRef names an undeclared parameter.
        BuiltinTypeMismatchError: If a builtin receives the wrong kind of value.
    """
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, ParamRef):
        if expr.name not in env:
            raise UnresolvedPlaceholderError(
                f"argument '{expr.name}' is not declared",
                hints=["remove it from the template body", f"or declare it with a default: '{expr.name}=0'"],
            )
        return env[expr.name]
    if isinstance(expr, TimeRef):
        return format_time(expr.kind, anchor)

    values = [evaluate(arg, env, anchor) for arg in expr.args]
    if expr.op is Builtin.CONCAT:
        return "".join(_text_args(expr.op, values))
    total = Money(sum(_money_args(expr.op, values)))
    if expr.op is Builtin.NEG:
        return Money(-total)
    return total


def _check_clause_type(kind: ClauseKind, value: ClauseValue) -> None:
    if kind is ClauseKind.VALUE and not isinstance(value, int):
        raise BuiltinTypeMismatchError(f"cannot treat text '{value}' as a monetary value")
    if kind is ClauseKind.TAG and not isinstance(value, str):
        raise BuiltinTypeMismatchError(
            "a tag must be text, not a monetary value",
            hints=["wrap the value with @Concat and a string argument"],
        )


def expand_clauses(defn: TemplateDef, invocation: Invocation, anchor: date) -> list[Clause]:
    """Bind arguments and evaluate every clause of a template body."""
    env = bind_arguments(defn, invocation)
    clauses = []
    for clause in defn.body:
        try:
            value = evaluate(clause.expr, env, anchor)
            _check_clause_type(clause.kind, value)
        except BilligError as err:
            if clause.location is not None:
                err.locate(clause.location)
            raise
        clauses.append(Clause(clause.kind, value, clause.location))
    return clauses


def expand(invocation: Invocation, anchor: date, registry: TemplateRegistry) -> Entry:
    """Expand one invocation into its entry.

    Args:
        invocation: Template name and arguments.
        anchor: Date of the day block holding the invocation.
        registry: Templates visible at the call site.

    Returns:
        The resolved entry (one per invocation).

    Raises:
        UnknownTemplateError: If no such template is visible.
        BilligError: Any binding, evaluation or resolution error, with the
            invocation site on its chain.
    """
    defn = registry.get(invocation.name)
    if defn is None:
        raise UnknownTemplateError(
            f"'{invocation.name}' is not declared",
            invocation.location,
            hints=["maybe a typo, or a missing import ?"],
        )
    try:
        clauses = expand_clauses(defn, invocation, anchor)
        entry = assemble(clauses, anchor, defn.location)
    except BilligError as err:
        if invocation.location is not None:
            if err.location is None:
                err.locate(invocation.location)
            elif err.location != invocation.location:
                err.add_context(invocation.location)
        raise
    logger.debug("expanded !%s at %s", defn.name, anchor)
    return entry
