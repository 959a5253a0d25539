"""Terminal reporter with rich output formatting."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from rich.status import Status

    from linecov.models.coverage import FileCoverageSummary, LineRange, PackageCoverage

console = Console()


_ALERT_RATE = 50.0
_CAUTION_RATE = 70.0
_GOOD_RATE = 90.0

# Narrowest the gaps column gets when the terminal is crowded
_MIN_GAPS_WIDTH = 10
# Cell padding plus one vertical border per column
_COLUMN_OVERHEAD = 3

_TOTAL_LABEL = "TOTAL"
_UNDEFINED = "-"


def coverage_style(percentage: float) -> str:
    """Return the Rich style for a coverage percentage.

    ``<= 50`` alerts, ``<= 70`` cautions, ``>= 90`` affirms; anything in
    between, and an undefined percentage, keeps the default style.
    """
    if math.isnan(percentage):
        return ""
    if percentage <= _ALERT_RATE:
        return "bold red"
    if percentage <= _CAUTION_RATE:
        return "yellow"
    if percentage >= _GOOD_RATE:
        return "green"
    return ""


def format_percentage(percentage: float) -> str:
    """Format a percentage as a rounded integer, ``-`` when undefined."""
    if math.isnan(percentage):
        return _UNDEFINED
    return f"{percentage:.0f}%"


def format_gaps(gaps: tuple[LineRange, ...]) -> str:
    """Format gap ranges as ``3, 7–9, 12``."""
    return ", ".join(str(gap) for gap in gaps)


def _row(
    label: str, summary: FileCoverageSummary | PackageCoverage, *, gaps: str | None
) -> list[Text | str]:
    percentage = summary.coverage_percentage
    cells: list[Text | str] = [
        Text(label),
        str(summary.lines_tracked),
        str(summary.lines_hit),
        str(summary.lines_missed),
        Text(format_percentage(percentage), style=coverage_style(percentage)),
    ]
    if gaps is not None:
        cells.append(gaps)
    return cells


def _gaps_width(rows: list[list[Text | str]], available: int) -> int:
    used = _COLUMN_OVERHEAD + 1
    for column in range(5):
        used += max(len(str(row[column])) for row in rows) + _COLUMN_OVERHEAD
    return max(_MIN_GAPS_WIDTH, available - used)


def build_coverage_table(
    coverage: PackageCoverage, *, show_gaps: bool = False, width: int | None = None
) -> Table:
    """Build the coverage summary table of a package.

    Args:
        coverage: Aggregated package coverage.
        show_gaps: Add a column listing the uncovered line ranges of each file.
        width: Available display width; defaults to the console width.

    Returns:
        A Rich table with one row per file and a final ``TOTAL`` row.
    """
    header = ["Filename", "Lines", "Hit", "Miss", "%"]
    file_rows = [
        _row(f.filename, f, gaps=format_gaps(f.coverage_gaps) if show_gaps else None)
        for f in coverage.files
    ]
    total_row = _row(_TOTAL_LABEL, coverage, gaps="" if show_gaps else None)

    table = Table(show_header=True, header_style="bold", show_lines=False)
    table.add_column(header[0], justify="left", no_wrap=True)
    for name in header[1:]:
        table.add_column(name, justify="right", no_wrap=True)
    if show_gaps:
        rows = [[*header, ""], *file_rows, total_row]
        table.add_column(
            "Gaps",
            justify="left",
            overflow="fold",
            max_width=_gaps_width(rows, width or console.width),
        )

    for row in file_rows:
        table.add_row(*row)
    table.add_section()
    table.add_row(*total_row)
    return table


class CLIReporter:
    """Rich terminal output reporter for coverage summaries."""

    def __init__(self) -> None:
        """Initialize the CLI reporter."""
        self.console = console

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def create_status(self, message: str) -> Status:
        """Create a Rich Status spinner for long-running operations."""
        return self.console.status(message)

    def print_coverage(
        self, coverage: PackageCoverage, *, show_gaps: bool = False, width: int | None = None
    ) -> None:
        """Print the coverage summary table of a package."""
        self.console.print(
            build_coverage_table(coverage, show_gaps=show_gaps, width=width or self.console.width)
        )


# Singleton instance for easy import
reporter = CLIReporter()
