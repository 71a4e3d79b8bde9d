"""Tests for the billig command line."""

import logging
import tomllib
from collections.abc import Generator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from billig.cli import app

runner = CliRunner()

LEDGER = """
!food_supplies value {
  val @Neg *value,
  type Food,
  span Month<Curr>,
  tag @Concat "Food " @Year "-" @Month,
}

2020:
  Dec:
    15: !food_supplies 69.42;
        val 1200, type Pay, tag "Salary";
"""


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Point the config at a temporary directory and restore logging afterwards."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    billig = logging.getLogger("billig")
    original_handlers = billig.handlers[:]
    original_level = billig.level
    original_propagate = billig.propagate
    yield
    billig.handlers = original_handlers
    billig.setLevel(original_level)
    billig.propagate = original_propagate


@pytest.fixture
def ledger(tmp_path: Path) -> Path:
    path = tmp_path / "main.bil"
    path.write_text(LEDGER)
    return path


class TestEntries:
    """Tests for 'billig entries'."""

    def test_prints_entries(self, ledger: Path) -> None:
        """Should list every resolved entry."""
        result = runner.invoke(app, ["entries", str(ledger)])

        assert result.exit_code == 0
        assert "Food 2020-Dec" in result.output
        assert "-69.42" in result.output
        assert "Salary" in result.output
        assert "+1200.00" in result.output

    def test_error_exits_with_status_1(self, tmp_path: Path) -> None:
        """Should print the error and exit 1."""
        path = tmp_path / "broken.bil"
        path.write_text('2020: Dec: 15: 1, A, "x"')

        result = runner.invoke(app, ["entries", str(path)])

        assert result.exit_code == 1
        assert "syntax error" in result.output
        assert "end of file" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        """Should report a file that does not exist."""
        result = runner.invoke(app, ["entries", str(tmp_path / "nope.bil")])

        assert result.exit_code == 1
        assert "import-not-found error" in result.output

    def test_no_file_and_no_config(self) -> None:
        """Should ask for a file when none is configured."""
        result = runner.invoke(app, ["entries"])

        assert result.exit_code == 1
        assert "no default_file configured" in result.output

    def test_default_file_from_config(self, ledger: Path) -> None:
        """Should load the configured file when none is given."""
        assert runner.invoke(app, ["init", "--default-file", str(ledger)]).exit_code == 0

        result = runner.invoke(app, ["entries"])

        assert result.exit_code == 0
        assert "Salary" in result.output


class TestCheck:
    """Tests for 'billig check'."""

    def test_valid_ledger(self, ledger: Path) -> None:
        """Should report counts."""
        result = runner.invoke(app, ["check", str(ledger)])

        assert result.exit_code == 0
        assert "Ledger is valid" in result.output
        assert "Entries: 2" in result.output
        assert "Templates: 1" in result.output

    def test_verbose_logging(self, ledger: Path) -> None:
        """Should accept the global logging options."""
        result = runner.invoke(app, ["--verbose", "--log-json", "check", str(ledger)])

        assert result.exit_code == 0
        assert logging.getLogger("billig").level == logging.DEBUG


class TestTemplates:
    """Tests for 'billig templates'."""

    def test_lists_signatures(self, ledger: Path) -> None:
        """Should show each template signature."""
        result = runner.invoke(app, ["templates", str(ledger)])

        assert result.exit_code == 0
        assert "!food_supplies value" in result.output


class TestInit:
    """Tests for 'billig init'."""

    def test_creates_config(self, tmp_path: Path) -> None:
        """Should write a config file."""
        result = runner.invoke(app, ["init"])

        config_path = tmp_path / "config" / "billig" / "config.toml"
        assert result.exit_code == 0
        assert config_path.exists()
        with open(config_path, "rb") as f:
            assert tomllib.load(f) == {"log_json": False}

    def test_refuses_to_overwrite(self) -> None:
        """Should require --force when a config exists."""
        assert runner.invoke(app, ["init"]).exit_code == 0

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 1
        assert "--force" in result.output

    def test_force_overwrites(self) -> None:
        """Should overwrite with --force."""
        assert runner.invoke(app, ["init"]).exit_code == 0

        assert runner.invoke(app, ["init", "--force"]).exit_code == 0
