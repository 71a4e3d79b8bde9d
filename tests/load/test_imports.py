"""Tests for import resolution and program compilation."""

from datetime import date
from pathlib import Path

import pytest

from billig.domain.models import DateRange
from billig.errors import (
    ImportCycleError,
    ImportNotFoundError,
    InvalidDateError,
    InvertedPeriodError,
    TemplateRedefinitionError,
    UnknownTemplateError,
)
from billig.load import load_file, load_text
from billig.load.imports import NOTHING_VISITED, resolve

FOOD_SUPPLIES = """
!food_supplies value {
  val @Neg *value,
  type Food,
  span Month<Curr>,
  tag @Concat "Food " @Year "-" @Month,
}
"""


def write(directory: Path, name: str, text: str) -> Path:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def tags(program) -> list[str]:
    return [entry.tag for entry in program.entries]


class TestLoadFile:
    """Tests for load_file."""

    def test_imported_template(self, tmp_path: Path) -> None:
        """Should expand a template defined in an imported file."""
        write(tmp_path, "templates.bil", FOOD_SUPPLIES)
        root = write(tmp_path, "main.bil", 'import "templates.bil";\n2020: Dec: 15: !food_supplies 69.42;')

        program = load_file(root)

        assert len(program.entries) == 1
        entry = program.entries[0]
        assert entry.value == -6942
        assert entry.category == "Food"
        assert entry.range == DateRange(date(2020, 12, 1), date(2021, 1, 1))
        assert entry.tag == "Food 2020-Dec"

    def test_templates_are_visible_file_wide(self, tmp_path: Path) -> None:
        """Should allow invoking a template defined further down the file."""
        root = write(tmp_path, "main.bil", "2020: Dec: 15: !food_supplies 10;\n" + FOOD_SUPPLIES)

        program = load_file(root)

        assert tags(program) == ["Food 2020-Dec"]

    def test_import_relative_to_importing_file(self, tmp_path: Path) -> None:
        """Should resolve nested imports against the importing file's directory."""
        write(tmp_path, "sub/deeper/leaf.bil", '2020: Jan: 01: 1, A, "leaf";')
        write(tmp_path, "sub/mid.bil", 'import "deeper/leaf.bil";')
        root = write(tmp_path, "main.bil", 'import "sub/mid.bil";')

        assert tags(load_file(root)) == ["leaf"]

    def test_entries_spliced_in_source_order(self, tmp_path: Path) -> None:
        """Should place imported entries where the import statement stands."""
        write(tmp_path, "b.bil", '2020: Jan: 02: 1, A, "imported";')
        root = write(
            tmp_path,
            "main.bil",
            '2020: Jan: 01: 1, A, "first";\nimport "b.bil";\n2020: Jan: 03: 1, A, "last";',
        )

        program = load_file(root)

        assert tags(program) == ["first", "imported", "last"]
        assert program.files == (root.resolve(), (tmp_path / "b.bil").resolve())

    def test_double_import_contributes_once(self, tmp_path: Path) -> None:
        """Should keep the entries of a file imported twice only once."""
        write(tmp_path, "b.bil", '2020: Jan: 02: 1, A, "imported";')
        root = write(tmp_path, "main.bil", 'import "b.bil";\nimport "./b.bil";')

        assert tags(load_file(root)) == ["imported"]

    def test_diamond_import(self, tmp_path: Path) -> None:
        """Should let two branches share a template without redefinition."""
        write(tmp_path, "d.bil", FOOD_SUPPLIES)
        write(tmp_path, "b.bil", 'import "d.bil";\n2020: Jan: 01: !food_supplies 1;')
        write(tmp_path, "c.bil", 'import "d.bil";\n2020: Feb: 01: !food_supplies 2;')
        root = write(tmp_path, "main.bil", 'import "b.bil";\nimport "c.bil";\n2020: Mar: 01: !food_supplies 3;')

        program = load_file(root)

        assert tags(program) == ["Food 2020-Jan", "Food 2020-Feb", "Food 2020-Mar"]
        assert set(program.templates) == {"food_supplies"}

    def test_self_import(self, tmp_path: Path) -> None:
        """Should refuse a file importing itself."""
        root = write(tmp_path, "main.bil", 'import "main.bil";')

        with pytest.raises(ImportCycleError) as exc_info:
            load_file(root)

        assert exc_info.value.cycle == [root.resolve(), root.resolve()]

    def test_transitive_cycle(self, tmp_path: Path) -> None:
        """Should name the whole chain of a transitive cycle."""
        a = write(tmp_path, "a.bil", 'import "b.bil";')
        b = write(tmp_path, "b.bil", '\nimport "a.bil";')

        with pytest.raises(ImportCycleError) as exc_info:
            load_file(a)

        err = exc_info.value
        assert err.cycle == [a.resolve(), b.resolve(), a.resolve()]
        assert err.location is not None
        assert err.location.path == str(b.resolve())
        assert err.location.line == 2
        assert [site.path for site in err.chain] == [str(a.resolve())]

    def test_missing_import(self, tmp_path: Path) -> None:
        """Should report the import statement of a missing file."""
        root = write(tmp_path, "main.bil", '\n\nimport "nope.bil";')

        with pytest.raises(ImportNotFoundError) as exc_info:
            load_file(root)

        assert exc_info.value.path == (tmp_path / "nope.bil").resolve()
        assert exc_info.value.location is not None
        assert exc_info.value.location.line == 3

    def test_missing_root(self, tmp_path: Path) -> None:
        """Should report a missing root file without a location."""
        with pytest.raises(ImportNotFoundError) as exc_info:
            load_file(tmp_path / "nope.bil")

        assert exc_info.value.location is None

    def test_error_in_imported_file(self, tmp_path: Path) -> None:
        """Should locate the error in the imported file and record the import."""
        child = write(tmp_path, "child.bil", '2020: Jan: 01: 1, A, "x", period 2021..2020;')
        root = write(tmp_path, "main.bil", 'import "child.bil";')

        with pytest.raises(InvertedPeriodError) as exc_info:
            load_file(root)

        err = exc_info.value
        assert err.location is not None
        assert err.location.path == str(child.resolve())
        assert len(err.chain) == 1
        assert err.chain[0].path == str(root.resolve())

    def test_redefinition_across_import(self, tmp_path: Path) -> None:
        """Should refuse a local template clashing with an imported one."""
        write(tmp_path, "templates.bil", FOOD_SUPPLIES)
        root = write(tmp_path, "main.bil", 'import "templates.bil";\n' + FOOD_SUPPLIES.replace("Food", "Home"))

        with pytest.raises(TemplateRedefinitionError):
            load_file(root)

    def test_templates_do_not_leak_upwards_without_import(self, tmp_path: Path) -> None:
        """Should not see templates of a sibling that was not imported."""
        write(tmp_path, "b.bil", FOOD_SUPPLIES)
        write(tmp_path, "c.bil", "2020: Jan: 01: !food_supplies 1;")
        root = write(tmp_path, "main.bil", 'import "b.bil";\nimport "c.bil";')

        with pytest.raises(UnknownTemplateError) as exc_info:
            load_file(root)

        assert exc_info.value.location is not None
        assert exc_info.value.location.path == str((tmp_path / "c.bil").resolve())


class TestResolve:
    """Tests for the visited mapping threaded through resolve."""

    def test_visited_is_returned(self, tmp_path: Path) -> None:
        """Should record the loaded file with its namespace."""
        root = write(tmp_path, "main.bil", FOOD_SUPPLIES)

        program, visited = resolve(root, None, NOTHING_VISITED)

        assert set(visited) == {root.resolve()}
        assert "food_supplies" in visited[root.resolve()]
        assert program.templates == visited[root.resolve()]
        assert NOTHING_VISITED == {}

    def test_already_visited_contributes_nothing(self, tmp_path: Path) -> None:
        """Should skip entries of a file already loaded but keep its templates."""
        root = write(tmp_path, "main.bil", FOOD_SUPPLIES + '2020: Jan: 01: 1, A, "x";')
        _, visited = resolve(root, None, NOTHING_VISITED)

        program, again = resolve(root, None, visited)

        assert program.entries == ()
        assert "food_supplies" in program.templates
        assert again is visited


class TestLoadText:
    """Tests for load_text."""

    def test_imports_relative_to_base_dir(self, tmp_path: Path) -> None:
        """Should resolve imports against the given directory."""
        write(tmp_path, "templates.bil", FOOD_SUPPLIES)

        program = load_text('import "templates.bil";\n2020: Dec: 15: !food_supplies 1;', base_dir=tmp_path)

        assert tags(program) == ["Food 2020-Dec"]
        assert program.files == ((tmp_path / "templates.bil").resolve(),)

    def test_no_imports(self) -> None:
        """Should work without touching the filesystem."""
        program = load_text('2020: Sep: 01: val -300, type Mov, span Year<Post> 1, tag "Train pass";')

        assert program.entries[0].range == DateRange(date(2020, 9, 1), date(2021, 9, 1))

    def test_span_past_supported_years(self) -> None:
        """Should report an oversized span at its clause."""
        with pytest.raises(InvalidDateError, match="supported years") as exc_info:
            load_text('2020: Jan: 01: val 1, type Food, span Year<Post> 9000, tag "x";')

        assert exc_info.value.location is not None
        assert exc_info.value.location.line == 1
