"""Loading billig sources: parsing, import resolution and compilation."""

from pathlib import Path

from billig.load.imports import NOTHING_VISITED, Program, compile_program, resolve
from billig.load.parser import parse


def load_file(path: Path | str) -> Program:
    """Load a root file and everything it imports.

    Raises:
        BilligError: On the first error met anywhere in the import tree.
    """
    program, _ = resolve(path, None, NOTHING_VISITED)
    return program


def load_text(text: str, base_dir: Path | None = None, path: str | None = None) -> Program:
    """Load in-memory source text.

    Args:
        text: Source text.
        base_dir: Directory imports are relative to (default: working directory).
        path: Name used in error locations.
    """
    tree = parse(text, path)
    program, _ = compile_program(tree, base_dir or Path.cwd(), NOTHING_VISITED)
    return program


__all__ = ["Program", "compile_program", "load_file", "load_text", "parse", "resolve"]
