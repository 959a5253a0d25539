"""Coverage summary models.

``RawFileCoverage`` is what a collector produces; the summaries are built
once per aggregation and never mutated afterwards.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field


def _percentage(hit: int, tracked: int) -> float:
    if tracked == 0:
        return math.nan
    return 100 * hit / tracked


@dataclass(frozen=True)
class RawFileCoverage:
    """Per-line execution counts for a single source file."""

    filename: str
    """Path of the source file, as reported by the collector."""

    coverage: tuple[int | None, ...] = ()
    """One entry per source line: a hit count, or ``None`` when not trackable."""


@dataclass(frozen=True)
class LineRange:
    """Closed, 1-based range of source lines."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        if self.start == self.end:
            return str(self.start)
        return f"{self.start}–{self.end}"


@dataclass(frozen=True)
class FileCoverageSummary:
    """Summarized coverage data about a single file."""

    filename: str
    """File path relative to the package root."""

    lines_hit: int
    """Number of lines covered by tests."""

    lines_tracked: int
    """Number of lines with content to be tested."""

    coverage_gaps: tuple[LineRange, ...] = field(default_factory=tuple)
    """Maximal ranges of tracked lines without coverage, in line order."""

    @property
    def lines_missed(self) -> int:
        return self.lines_tracked - self.lines_hit

    @property
    def coverage_percentage(self) -> float:
        """Percentage of lines covered, NaN when nothing is tracked."""
        return _percentage(self.lines_hit, self.lines_tracked)


@dataclass(frozen=True)
class PackageCoverage:
    """Summarized coverage data about a package.

    Holds the per-file summaries in processing order and the totals over them.
    """

    package_dir: str
    """Absolute path of the package."""

    files: tuple[FileCoverageSummary, ...] = ()
    """Per-file summaries, in the order the files were processed."""

    lines_hit: int = 0
    """Total number of lines covered by tests in the package."""

    lines_tracked: int = 0
    """Total number of lines with content to be tested in the package."""

    @property
    def lines_missed(self) -> int:
        return self.lines_tracked - self.lines_hit

    @property
    def coverage_percentage(self) -> float:
        """Percentage of package lines covered, NaN when nothing is tracked."""
        return _percentage(self.lines_hit, self.lines_tracked)
