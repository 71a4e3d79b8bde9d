"""billig - plain-text budgeting ledger front-end."""

from billig.domain.models import Entry
from billig.load import Program, load_file, load_text, parse

__version__ = "0.1.0"

__all__ = ["Entry", "Program", "load_file", "load_text", "parse"]
