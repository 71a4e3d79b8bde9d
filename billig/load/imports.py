"""Import resolution and compilation of parsed files into programs.

A file is compiled in two passes. First its own templates are registered and
its imports are resolved (depth-first, in source order) so that every template
visible to the file is known. Then its statements are walked in source order:
plain entries are assembled, invocations expanded, and the entries of each
import are spliced in where the import statement stands.

Each file is loaded at most once per resolution. The set of loaded files,
with the template namespace each one exposes, is threaded through the
recursion by value; nothing is cached between calls.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from billig.domain.entries import assemble
from billig.domain.models import Entry
from billig.domain.templates import TemplateDef, TemplateRegistry, expand
from billig.errors import BilligError, ImportCycleError, ImportNotFoundError, SourceLocation
from billig.load.nodes import ImportStmt, PlainEntry, SourceTree
from billig.load.parser import parse

logger = logging.getLogger(__name__)

# Canonical path of every loaded file -> templates it exposes
Visited = Mapping[Path, Mapping[str, TemplateDef]]

NOTHING_VISITED: Visited = MappingProxyType({})


@dataclass(frozen=True)
class Program:
    """Resolved output of a root file and everything it imports."""

    entries: tuple[Entry, ...] = ()
    templates: Mapping[str, TemplateDef] = field(default_factory=lambda: MappingProxyType({}))
    files: tuple[Path, ...] = ()


def _canonical(path: Path | str, anchor_dir: Path | None) -> Path:
    target = Path(path).expanduser()
    if not target.is_absolute() and anchor_dir is not None:
        target = anchor_dir / target
    return target.resolve()


def resolve(
    path: Path | str,
    anchor_dir: Path | None,
    visited: Visited,
    chain: tuple[Path, ...] = (),
    location: SourceLocation | None = None,
) -> tuple[Program, Visited]:
    """Load one file and, recursively, everything it imports.

    Args:
        path: File to load, relative to ``anchor_dir`` unless absolute.
        anchor_dir: Directory of the importing file (None for the working directory).
        visited: Files already loaded during this resolution.
        chain: Files currently being loaded, outermost first.
        location: Import statement that requested the file, if any.

    Returns:
        The file's program and the updated visited mapping. A file that was
        already loaded contributes no entries but still exposes its templates.

    Raises:
        ImportCycleError: If the file is already on the import chain.
        ImportNotFoundError: If the file cannot be read.
        BilligError: Any error in the file or its imports.
    """
    target = _canonical(path, anchor_dir)
    if target in chain:
        raise ImportCycleError([*chain, target], location)
    if target in visited:
        logger.debug("skipping %s: already loaded", target)
        return Program(templates=visited[target]), visited

    try:
        text = target.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ImportNotFoundError(target, location) from exc

    logger.debug("loading %s", target)
    tree = parse(text, str(target))
    return compile_program(tree, target.parent, visited, (*chain, target), target)


def compile_program(
    tree: SourceTree,
    base_dir: Path | None,
    visited: Visited,
    chain: tuple[Path, ...] = (),
    path: Path | None = None,
) -> tuple[Program, Visited]:
    """Register templates, resolve imports and materialize the entries of one file.

    Args:
        tree: Parsed file.
        base_dir: Directory its imports are relative to.
        visited: Files already loaded during this resolution.
        chain: Files currently being loaded, including this one.
        path: Canonical path of this file, None for in-memory text.

    Returns:
        The file's program and the updated visited mapping.
    """
    registry = TemplateRegistry()
    for defn in tree.definitions:
        registry.register(defn)

    imported: list[Program] = []
    for stmt in tree.imports:
        try:
            program, visited = resolve(stmt.path, base_dir, visited, chain, stmt.location)
        except BilligError as err:
            if stmt.location is not None and err.location != stmt.location:
                err.add_context(stmt.location)
            raise
        registry.merge(program.templates, stmt.location)
        imported.append(program)

    entries: list[Entry] = []
    files = [path] if path is not None else []
    pending = iter(imported)
    for stmt in tree.statements():
        if isinstance(stmt, ImportStmt):
            program = next(pending)
            entries.extend(program.entries)
            files.extend(program.files)
        elif isinstance(stmt, PlainEntry):
            entries.append(assemble(stmt.clauses, stmt.date, stmt.location))
        elif not isinstance(stmt, TemplateDef):
            entries.append(expand(stmt.invocation, stmt.date, registry))

    namespace = MappingProxyType(dict(registry.templates))
    if path is not None:
        visited = MappingProxyType({**visited, path: namespace})
    logger.debug(
        "compiled %s: %d entries, %d templates",
        path or "<text>",
        len(entries),
        len(namespace),
    )
    return Program(tuple(entries), namespace, tuple(files)), visited
