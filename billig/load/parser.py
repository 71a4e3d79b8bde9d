"""Structural parser: source text to concrete syntax tree.

```
program      ::= item*
item         ::= year_block | template_def | import
import       ::= "import" (STRING | PATH) ";"
year_block   ::= YYYY ":" month_block*
month_block  ::= Mmm ":" day_block*
day_block    ::= DD ":" entry+
entry        ::= (invocation | clause ("," clause)*) ";"
invocation   ::= "!" NAME literal* (NAME "=" literal)*
clause       ::= "val"? MONEY | "type" CATEGORY | CATEGORY
               | "span"? DURATION ("<" WINDOW ">")? COUNT?
               | "period" period | "tag"? STRING
period       ::= "()" | date ".." date? | ".." date? | date
template_def ::= "!" NAME NAME* (NAME "=" literal)* "{" tclause ("," tclause)* ","? "}"
tclause      ::= "val"? expr | "tag"? expr | type/span/period clause
expr         ::= "@Neg" expr+ | "@Sum" expr+ | "@Concat" expr+
               | "@Year" | "@Month" | "@Day" | "@Weekday" | "@Date"
               | "*" NAME | MONEY | STRING
```

Whitespace and ``//`` comments may appear between any two tokens. Bare
clauses are classified by their shape alone. Parsing stops at the first
error; nothing past a malformed block is analyzed.
"""

import logging
import re
from datetime import date

from billig.dates import make_date, parse_month
from billig.domain.entries import collect_slots, missing_clause, parse_money
from billig.domain.models import (
    After,
    Before,
    Between,
    CategoryName,
    Clause,
    ClauseKind,
    Duration,
    EmptyPeriod,
    PartialDate,
    Period,
    Single,
    Span,
    Window,
)
from billig.domain.templates import (
    ArgValue,
    Builtin,
    BuiltinCall,
    Expr,
    Invocation,
    Literal,
    ParamRef,
    TemplateClause,
    TemplateDef,
    TimeKind,
    TimeRef,
)
from billig.errors import (
    BilligError,
    BilligSyntaxError,
    SourceLocation,
    UnknownBlockStructureError,
)
from billig.load.nodes import (
    DayBlock,
    EntryNode,
    ImportStmt,
    InvocationEntry,
    MonthBlock,
    PlainEntry,
    SourceTree,
    TopLevel,
    YearBlock,
)

logger = logging.getLogger(__name__)

_SKIP = re.compile(r"(?:\s+|//[^\n]*)*")
_FOUND = re.compile(r"\S{1,20}")

_YEAR_MARKER = re.compile(r"(\d{4})\s*:")
_DAY_MARKER = re.compile(r"(\d{2})\s*:")
_MONTH_MARKER = re.compile(r"([A-Z][a-z]{2,})\s*:")
_ANY_MARKER = re.compile(r"(?:\d+|[A-Z][a-z]{2,})\s*:")

_IMPORT = re.compile(r"import(?!\w)")
_KEYWORDS = {kind: re.compile(rf"{kind.value}(?!\w)") for kind in ClauseKind}
_CLAUSE_START = re.compile(r'(?:(?:val|type|span|period|tag)(?!\w)|-?\d|"|[A-Z])')

_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NAMED = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s*=")
_UPPER_NAME = re.compile(r"[A-Z][A-Za-z0-9_]*")
_MONEY = re.compile(r"-?\d+(?:\.\d{1,2})?(?![\w.])")
_STRING = re.compile(r'"([^"]*)"')
_PATH = re.compile(r'[^\s;"]+')
_INTEGER = re.compile(r"\d+(?![\w.])")
_AT_WORD = re.compile(r"@([A-Za-z]+)")
_PARTIAL = re.compile(
    r"(?:(?P<year>\d{4})(?:-(?P<year_month>[A-Z][a-z]{2,})(?:-(?P<year_month_day>\d{1,2}))?)?"
    r"|(?P<month>[A-Z][a-z]{2,})(?:-(?P<month_day>\d{1,2}))?"
    r"|(?P<day>\d{1,2}))(?!\w)"
)

_BANG = re.compile(r"!")
_STAR = re.compile(r"\*")
_COMMA = re.compile(r",")
_SEMICOLON = re.compile(r";")
_LBRACE = re.compile(r"\{")
_RBRACE = re.compile(r"\}")
_LT = re.compile(r"<")
_GT = re.compile(r">")
_DOTS = re.compile(r"\.\.")
_EMPTY = re.compile(r"\(\s*\)")

DURATIONS = {duration.value: duration for duration in Duration}
WINDOWS = {window.value: window for window in Window}
TIME_REFS = {kind.value: kind for kind in TimeKind}
BUILTINS = {op.value: op for op in Builtin}


def parse(text: str, path: str | None = None) -> SourceTree:
    """Parse a whole source file.

    Args:
        text: File contents.
        path: File name used in error locations.

    Returns:
        The concrete syntax tree.

    Raises:
        BilligSyntaxError: If the text does not match the grammar.
        UnknownBlockStructureError: If a marker or entry is at the wrong level.
        InvalidDateError: If a day marker designates a date that does not exist.
    """
    tree = _Parser(text, path).program()
    logger.debug("parsed %s: %d top-level items", path or "<text>", len(tree.items))
    return tree


class _Parser:
    """Recursive descent over the raw text, one regex per token."""

    def __init__(self, text: str, path: str | None) -> None:
        self.text = text
        self.path = path
        self.pos = 0

    # -- cursor ------------------------------------------------------------

    def _skip(self) -> None:
        match = _SKIP.match(self.text, self.pos)
        if match:
            self.pos = match.end()

    def _at_end(self) -> bool:
        self._skip()
        return self.pos >= len(self.text)

    def _location(self) -> SourceLocation:
        self._skip()
        line = self.text.count("\n", 0, self.pos) + 1
        column = self.pos - (self.text.rfind("\n", 0, self.pos) + 1) + 1
        return SourceLocation(self.path, line, column)

    def _peek(self, pattern: re.Pattern[str]) -> re.Match[str] | None:
        self._skip()
        return pattern.match(self.text, self.pos)

    def _accept(self, pattern: re.Pattern[str]) -> re.Match[str] | None:
        match = self._peek(pattern)
        if match:
            self.pos = match.end()
        return match

    def _expect(self, pattern: re.Pattern[str], expected: str) -> re.Match[str]:
        match = self._accept(pattern)
        if match is None:
            raise self._error(expected)
        return match

    def _error(self, expected: str) -> BilligSyntaxError:
        location = self._location()
        match = _FOUND.match(self.text, self.pos)
        found = f"'{match[0]}'" if match else "end of file"
        return BilligSyntaxError(expected, location, found=found)

    def _definition_ahead(self) -> bool:
        """Whether the '!' at the cursor opens a definition rather than an invocation."""
        text, pos = self.text, self.pos
        while pos < len(text):
            if text[pos] == '"':
                end = text.find('"', pos + 1)
                if end < 0:
                    return False
                pos = end + 1
            elif text.startswith("//", pos):
                end = text.find("\n", pos)
                if end < 0:
                    return False
                pos = end
            elif text[pos] == "{":
                return True
            elif text[pos] == ";":
                return False
            else:
                pos += 1
        return False

    def _entry_ahead(self) -> bool:
        if self._peek(_ANY_MARKER) or self._peek(_IMPORT):
            return False
        if self._peek(_BANG):
            return not self._definition_ahead()
        return self._peek(_CLAUSE_START) is not None

    # -- blocks ------------------------------------------------------------

    def program(self) -> SourceTree:
        items: list[TopLevel] = []
        while not self._at_end():
            if self._peek(_YEAR_MARKER):
                items.append(self._year_block())
            elif self._peek(_IMPORT):
                items.append(self._import())
            elif self._peek(_BANG) and self._definition_ahead():
                items.append(self._template_def())
            elif self._peek(_MONTH_MARKER):
                raise UnknownBlockStructureError(
                    "month block outside of a year block",
                    self._location(),
                    hints=["add a year marker such as '2020:' before it"],
                )
            elif self._peek(_DAY_MARKER):
                raise UnknownBlockStructureError(
                    "day block outside of a month block",
                    self._location(),
                    hints=["add year and month markers such as '2020: Jan:' before it"],
                )
            elif self._entry_ahead():
                raise UnknownBlockStructureError(
                    "entry outside of a day block",
                    self._location(),
                    hints=["entries belong under 'YYYY:', 'Mmm:' and 'DD:' markers"],
                )
            else:
                raise self._error("a year marker ('YYYY:'), a template definition or an import")
        return SourceTree(self.path, tuple(items))

    def _year_block(self) -> YearBlock:
        location = self._location()
        year = int(self._expect(_YEAR_MARKER, "a year marker ('YYYY:')")[1])
        try:
            make_date(year, 1, 1)
        except BilligError as err:
            raise err.locate(location)

        months = []
        while True:
            if self._peek(_MONTH_MARKER):
                months.append(self._month_block(year))
            elif self._peek(_DAY_MARKER):
                raise UnknownBlockStructureError(
                    "day block directly inside a year block",
                    self._location(),
                    hints=["add a month marker such as 'Jan:' before it"],
                )
            elif self._peek(_YEAR_MARKER):
                break
            elif self._peek(_ANY_MARKER):
                raise self._error("a month marker ('Jan:' ... 'Dec:')")
            elif self._entry_ahead():
                raise UnknownBlockStructureError(
                    "entry outside of a day block",
                    self._location(),
                    hints=["add month and day markers such as 'Jan: 01:' before it"],
                )
            else:
                break
        return YearBlock(year, tuple(months), location)

    def _month_block(self, year: int) -> MonthBlock:
        location = self._location()
        name = self._expect(_MONTH_MARKER, "a month marker ('Jan:' ... 'Dec:')")[1]
        try:
            month = parse_month(name)
        except BilligError as err:
            raise err.locate(location)

        days = []
        while True:
            if self._peek(_DAY_MARKER):
                days.append(self._day_block(year, month))
            elif self._peek(_YEAR_MARKER) or self._peek(_MONTH_MARKER):
                break
            elif self._peek(_ANY_MARKER):
                raise self._error("a day marker ('DD:')")
            elif self._entry_ahead():
                raise UnknownBlockStructureError(
                    "entry outside of a day block",
                    self._location(),
                    hints=["add a day marker such as '01:' before it"],
                )
            else:
                break
        return MonthBlock(year, month, tuple(days), location)

    def _day_block(self, year: int, month: int) -> DayBlock:
        location = self._location()
        day = int(self._expect(_DAY_MARKER, "a day marker ('DD:')")[1])
        try:
            anchor = make_date(year, month, day)
        except BilligError as err:
            raise err.locate(location)

        if not self._entry_ahead():
            raise self._error("at least one entry after a day marker")
        entries = [self._entry(anchor)]
        while self._entry_ahead():
            entries.append(self._entry(anchor))
        return DayBlock(anchor, tuple(entries), location)

    def _import(self) -> ImportStmt:
        location = self._location()
        self._expect(_IMPORT, "'import'")
        quoted = self._accept(_STRING)
        path = quoted[1] if quoted else self._expect(_PATH, "a file path")[0]
        self._expect(_SEMICOLON, "a semicolon (';') terminating the import")
        return ImportStmt(path, location)

    # -- entries -----------------------------------------------------------

    def _entry(self, anchor: date) -> EntryNode:
        location = self._location()
        node: EntryNode
        if self._accept(_BANG):
            node = InvocationEntry(anchor, self._invocation(location))
        else:
            clauses = [self._clause()]
            while self._accept(_COMMA):
                clauses.append(self._clause())
            node = PlainEntry(anchor, tuple(clauses), location)
        self._expect(_SEMICOLON, "a semicolon (';') terminating the entry")

        if isinstance(node, PlainEntry):
            missing = missing_clause(collect_slots(node.clauses, location), location)
            if missing is not None:
                raise missing
        return node

    def _invocation(self, location: SourceLocation) -> Invocation:
        name = self._expect(_NAME, "a template name after '!'")[0]
        positional: list[ArgValue] = []
        named: list[tuple[str, ArgValue]] = []
        while True:
            argument = self._accept(_NAMED)
            if argument:
                named.append((argument[1], self._literal()))
            elif self._peek(_MONEY) or self._peek(_STRING):
                if named:
                    raise self._error("a named argument (positional arguments come first)")
                positional.append(self._literal())
            else:
                break
        return Invocation(name, tuple(positional), tuple(named), location)

    def _literal(self) -> ArgValue:
        money = self._accept(_MONEY)
        if money:
            return parse_money(money[0])
        return self._expect(_STRING, "a monetary value or a quoted string")[1]

    def _clause(self) -> Clause:
        location = self._location()
        if self._accept(_KEYWORDS[ClauseKind.VALUE]):
            money = self._expect(_MONEY, "a monetary value ('42.69')")
            return Clause(ClauseKind.VALUE, parse_money(money[0]), location)
        if self._accept(_KEYWORDS[ClauseKind.CATEGORY]):
            name = self._expect(_UPPER_NAME, "a category name such as 'Food'")
            return Clause(ClauseKind.CATEGORY, CategoryName(name[0]), location)
        if self._accept(_KEYWORDS[ClauseKind.SPAN]):
            return Clause(ClauseKind.SPAN, self._span(), location)
        if self._accept(_KEYWORDS[ClauseKind.PERIOD]):
            return Clause(ClauseKind.PERIOD, self._period(), location)
        if self._accept(_KEYWORDS[ClauseKind.TAG]):
            return Clause(ClauseKind.TAG, self._expect(_STRING, "a quoted tag ('\"foo\"')")[1], location)
        return self._bare_clause(location)

    def _bare_clause(self, location: SourceLocation) -> Clause:
        money = self._accept(_MONEY)
        if money:
            return Clause(ClauseKind.VALUE, parse_money(money[0]), location)
        string = self._accept(_STRING)
        if string:
            return Clause(ClauseKind.TAG, string[1], location)
        word = self._peek(_UPPER_NAME)
        if word and word[0] in DURATIONS:
            return Clause(ClauseKind.SPAN, self._span(), location)
        if word and word[0] in WINDOWS:
            raise self._error("a duration (Day, Week, Month or Year) before the window")
        if word:
            self.pos = word.end()
            return Clause(ClauseKind.CATEGORY, CategoryName(word[0]), location)
        raise self._error("a clause ('val', 'type', 'span', 'period' or 'tag')")

    def _span(self) -> Span:
        expected = "a duration (Day, Week, Month or Year)"
        word = self._peek(_UPPER_NAME)
        if word is None or word[0] not in DURATIONS:
            raise self._error(expected)
        self.pos = word.end()
        duration = DURATIONS[word[0]]

        window = Window.CURR
        if self._accept(_LT):
            expected = "a window (Curr, Post, Ante, Pred or Succ)"
            word = self._peek(_UPPER_NAME)
            if word is None or word[0] not in WINDOWS:
                raise self._error(expected)
            self.pos = word.end()
            window = WINDOWS[word[0]]
            self._expect(_GT, "'>' closing the window")

        count = 1
        number = self._peek(_INTEGER)
        if number:
            count = int(number[0])
            if count < 1:
                raise self._error("a positive count")
            self.pos = number.end()
        return Span(duration, window, count)

    def _period(self) -> Period:
        if self._accept(_EMPTY):
            return EmptyPeriod()
        if self._accept(_DOTS):
            return Before(self._partial_date(optional=True))
        start = self._partial_date()
        if not self._accept(_DOTS):
            return Single(start)
        end = self._partial_date(optional=True)
        if end is None:
            return After(start)
        return Between(start, end)

    def _partial_date(self, optional: bool = False) -> PartialDate | None:
        location = self._location()
        match = self._accept(_PARTIAL)
        if match is None:
            if optional:
                return None
            raise self._error("a date such as 2020-Jan-15, 2020-Jan, 2020, Jan-15, Jan or 15")

        year = match["year"]
        month = match["year_month"] or match["month"]
        day = match["year_month_day"] or match["month_day"] or match["day"]
        try:
            return PartialDate(
                year=int(year) if year else None,
                month=parse_month(month) if month else None,
                day=int(day) if day else None,
            )
        except BilligError as err:
            raise err.locate(location)

    # -- templates ---------------------------------------------------------

    def _template_def(self) -> TemplateDef:
        location = self._location()
        self._expect(_BANG, "'!'")
        name = self._expect(_NAME, "a template name after '!'")[0]

        positional: list[str] = []
        named: list[tuple[str, ArgValue]] = []
        while True:
            parameter = self._accept(_NAMED)
            if parameter:
                named.append((parameter[1], self._literal()))
                continue
            word = self._peek(_NAME)
            if word is None:
                break
            if named:
                raise self._error("a named parameter with a default (positional parameters come first)")
            self.pos = word.end()
            positional.append(word[0])

        self._expect(_LBRACE, "'{' opening the template body")
        body = [self._template_clause()]
        while self._accept(_COMMA):
            if self._peek(_RBRACE):
                break
            body.append(self._template_clause())
        self._expect(_RBRACE, "a comma (',') or '}' closing the template body")

        missing = missing_clause(collect_slots(body, location), location)
        if missing is not None:
            raise missing
        return TemplateDef(name, tuple(positional), tuple(named), tuple(body), location)

    def _template_clause(self) -> TemplateClause:
        location = self._location()
        if self._accept(_KEYWORDS[ClauseKind.VALUE]):
            return TemplateClause(ClauseKind.VALUE, self._expr(), location)
        if self._accept(_KEYWORDS[ClauseKind.TAG]):
            return TemplateClause(ClauseKind.TAG, self._expr(), location)

        at_word = self._peek(_AT_WORD)
        if self._peek(_MONEY) or at_word and at_word[1] in (Builtin.NEG, Builtin.SUM):
            return TemplateClause(ClauseKind.VALUE, self._expr(), location)
        if self._peek(_STRING) or at_word:
            return TemplateClause(ClauseKind.TAG, self._expr(), location)
        if self._peek(_STAR):
            raise self._error("'val' or 'tag' before an argument reference")

        clause = self._clause()
        return TemplateClause(clause.kind, Literal(clause.value), clause.location)

    def _expr_ahead(self) -> bool:
        return any(self._peek(pattern) for pattern in (_AT_WORD, _STAR, _MONEY, _STRING))

    def _expr(self) -> Expr:
        location = self._location()
        at_word = self._accept(_AT_WORD)
        if at_word:
            word = at_word[1]
            if word in TIME_REFS:
                return TimeRef(TIME_REFS[word])
            if word in BUILTINS:
                args = [self._expr()]
                while self._expr_ahead():
                    args.append(self._expr())
                return BuiltinCall(BUILTINS[word], tuple(args))
            raise BilligSyntaxError(
                "a builtin (@Neg, @Sum, @Concat) or a time reference (@Year, @Month, @Day, @Weekday, @Date)",
                location,
                found=f"'@{word}'",
            )
        if self._accept(_STAR):
            return ParamRef(self._expect(_NAME, "an argument name after '*'")[0])
        money = self._accept(_MONEY)
        if money:
            return Literal(parse_money(money[0]))
        string = self._accept(_STRING)
        if string:
            return Literal(string[1])
        raise self._error("a value, a string, an argument reference ('*name') or a builtin")
