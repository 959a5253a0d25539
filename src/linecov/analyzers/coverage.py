"""Gap extraction and coverage metrics aggregation."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from linecov.models.coverage import (
    FileCoverageSummary,
    LineRange,
    PackageCoverage,
    RawFileCoverage,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)


def find_gaps(coverage: Sequence[int | None]) -> list[LineRange]:
    """Return the ranges of tracked lines without coverage.

    A gap starts at a line with a zero count and runs until the next line
    that is untracked (``None``) or has a positive count. Line numbers are
    1-based and the ranges are closed.

    >>> find_gaps([None, 0, 0, 3, 0])
    [LineRange(start=2, end=3), LineRange(start=5, end=5)]
    """
    gaps: list[LineRange] = []
    gap_start: int | None = None
    for line_number, count in enumerate(coverage, start=1):
        if count == 0:
            if gap_start is None:
                gap_start = line_number
        elif gap_start is not None:
            gaps.append(LineRange(gap_start, line_number - 1))
            gap_start = None
    if gap_start is not None:
        gaps.append(LineRange(gap_start, len(coverage)))
    return gaps


def _relative_filename(filename: str, package_dir: str | Path) -> str:
    if not os.path.isabs(filename):
        return filename
    try:
        return os.path.relpath(filename, package_dir)
    except ValueError:
        # Different drive on Windows
        return filename


def summarize_file(raw: RawFileCoverage, package_dir: str | Path) -> FileCoverageSummary:
    """Evaluate the coverage metrics of a single file."""
    tracked = sum(1 for count in raw.coverage if count is not None)
    gaps = find_gaps(raw.coverage)
    hit = tracked - sum(len(gap) for gap in gaps)
    return FileCoverageSummary(
        filename=_relative_filename(raw.filename, package_dir),
        lines_hit=hit,
        lines_tracked=tracked,
        coverage_gaps=tuple(gaps),
    )


def aggregate(raw_files: Iterable[RawFileCoverage], package_dir: str | Path) -> PackageCoverage:
    """Evaluate the coverage metrics of a package from its raw per-line counts.

    File order is preserved. Files without tracked lines are kept and carry a
    NaN percentage.
    """
    files = tuple(summarize_file(raw, package_dir) for raw in raw_files)
    coverage = PackageCoverage(
        package_dir=os.path.abspath(package_dir),
        files=files,
        lines_hit=sum(f.lines_hit for f in files),
        lines_tracked=sum(f.lines_tracked for f in files),
    )
    logger.debug(
        "Aggregated %d files: %d/%d lines hit",
        len(files),
        coverage.lines_hit,
        coverage.lines_tracked,
    )
    return coverage
