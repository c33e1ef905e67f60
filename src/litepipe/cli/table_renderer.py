"""Table rendering utilities for CLI output."""

from collections.abc import Sequence
from typing import Any

import click

from litepipe.sdk.stream.types import Row


def _display(value: Any) -> str:
    return "NULL" if value is None else str(value)


def render_table(
    header: Sequence[str],
    rows: Sequence[Row],
    title: str = "Results",
    max_rows: int = 100,
    max_col_width: int = 50,
) -> None:
    """Render query rows as a table in the CLI.

    Args:
        header: Column names; when empty, columns are numbered
        rows: Rows to display
        title: Title for the table
        max_rows: Maximum rows to display
        max_col_width: Maximum column width
    """
    if not rows:
        click.echo(f"\n{click.style(f'📊 {title} (0 rows)', fg='cyan', bold=True)}")
        return

    click.echo(f"\n{click.style(f'📊 {title} ({len(rows)} rows):', fg='cyan', bold=True)}\n")

    columns = list(header) or [f"#{i + 1}" for i in range(len(rows[0]))]
    display_rows = rows[:max_rows]

    col_widths = []
    for i, col in enumerate(columns):
        width = len(col)
        for row in display_rows:
            if i < len(row):
                width = max(width, len(_display(row[i])))
        col_widths.append(min(width, max_col_width))

    header_line = " │ ".join(col.ljust(col_widths[i]) for i, col in enumerate(columns))
    click.echo(header_line)
    click.echo("─" * len(header_line))

    for row in display_rows:
        parts = []
        for i, width in enumerate(col_widths):
            val = _display(row[i]) if i < len(row) else ""
            if len(val) > width:
                val = val[: width - 3] + "..."
            parts.append(val.ljust(width))
        click.echo(" │ ".join(parts))

    if len(rows) > max_rows:
        click.echo(f"\n... and {len(rows) - max_rows} more rows")
