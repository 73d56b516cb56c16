"""Shared Rich console and table rendering for the CLI.

Commands print through one Console so tables and status lines land on the
same stream and respect the same terminal width.
"""

from typing import Iterable, Sequence

from rich.console import Console
from rich.table import Table

_console: Console | None = None


def get_console() -> Console:
    """Get or create the global Rich Console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def safe_print(message: str, style: str | None = None) -> None:
    """Print a line with optional Rich styling (e.g. "bold red")."""
    console = get_console()
    if style:
        console.print(message, style=style)
    else:
        console.print(message)


def print_table(
    title: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[str]],
    numeric_columns: Sequence[str] = (),
) -> None:
    """Render rows as a Rich table.

    Args:
        title: Table caption shown above the header
        columns: Column headers, in display order
        rows: Row values already formatted as strings
        numeric_columns: Headers whose cells are right-justified
    """
    table = Table(title=title, show_lines=False)
    for column in columns:
        justify = "right" if column in numeric_columns else "left"
        table.add_column(column, justify=justify)
    for row in rows:
        table.add_row(*row)
    get_console().print(table)
