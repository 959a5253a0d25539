"""Reader for ``.cov`` per-line execution count files.

Julia's ``--code-coverage`` writes one ``.cov`` file per source file and
process, next to the source: ``foo.jl.cov`` or ``foo.jl.<pid>.cov``. Each
line mirrors a source line; the first nine characters hold a right-aligned
hit count, or ``-`` when the line has no executable code.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from linecov.models.coverage import RawFileCoverage

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

_COUNT_WIDTH = 9
_UNTRACKED = "-"
_COV_SUFFIX = ".cov"
_PID_SUFFIX_RE = re.compile(r"\.\d+$")


def parse_cov_line(line: str) -> int | None:
    """Return the hit count of one ``.cov`` line, or None when untracked."""
    field = line[:_COUNT_WIDTH].strip()
    if not field or field == _UNTRACKED:
        return None
    return int(field)


def _merge(
    counts: list[int | None], other: Sequence[int | None]
) -> list[int | None]:
    if len(other) > len(counts):
        counts = counts + [None] * (len(other) - len(counts))
    for index, count in enumerate(other):
        if count is None:
            continue
        current = counts[index]
        counts[index] = count if current is None else current + count
    return counts


def find_cov_files(source: Path) -> list[Path]:
    """Return the count files belonging to *source*, sorted by name."""
    prefix = source.name
    matches = []
    for candidate in source.parent.glob(f"{prefix}*{_COV_SUFFIX}"):
        stem = candidate.name[len(prefix) : -len(_COV_SUFFIX)]
        if stem == "" or _PID_SUFFIX_RE.fullmatch(stem):
            matches.append(candidate)
    return sorted(matches)


def read_cov_file(path: Path) -> list[int | None]:
    """Parse a single ``.cov`` file."""
    with path.open(encoding="utf-8", errors="replace") as fh:
        return [parse_cov_line(line) for line in fh]


def _count_lines(source: Path) -> int:
    with source.open("rb") as fh:
        return sum(1 for _ in fh)


def process_file(source: str | Path) -> RawFileCoverage:
    """Collect the merged per-line counts of *source*.

    A source without count files is reported with every line untracked.
    """
    source = Path(source)
    counts: list[int | None] = []
    cov_files = find_cov_files(source)
    for cov_file in cov_files:
        counts = _merge(counts, read_cov_file(cov_file))
    line_count = _count_lines(source)
    if len(counts) < line_count:
        counts.extend([None] * (line_count - len(counts)))
    logger.debug("Read %d count file(s) for %s", len(cov_files), source)
    return RawFileCoverage(filename=str(source), coverage=tuple(counts))


def _is_source(path: Path, suffixes: Sequence[str]) -> bool:
    return path.is_file() and path.suffix in suffixes


def process_folder(folder: str | Path, suffixes: Sequence[str]) -> list[RawFileCoverage]:
    """Collect counts for every source file under *folder*, in path order."""
    folder = Path(folder)
    if not folder.is_dir():
        logger.warning("Coverage folder %s does not exist, skipping", folder)
        return []
    sources = sorted(p for p in folder.rglob("*") if _is_source(p, suffixes))
    return [process_file(source) for source in sources]


def collect(
    package_dir: str | Path,
    folders: Iterable[str],
    files: Iterable[str],
    suffixes: Sequence[str],
) -> list[RawFileCoverage]:
    """Collect raw counts for the folders, then the explicit files.

    Relative paths are resolved against *package_dir*; a file reached twice
    is only reported the first time.
    """
    root = Path(package_dir).resolve()
    seen: set[str] = set()
    result: list[RawFileCoverage] = []

    def _add(records: Iterable[RawFileCoverage]) -> None:
        for record in records:
            if record.filename not in seen:
                seen.add(record.filename)
                result.append(record)

    for folder in folders:
        _add(process_folder(root / folder, suffixes))
    for file in files:
        _add([process_file(root / file)])
    return result


def clean_folder(folder: str | Path) -> int:
    """Delete the ``.cov`` files under *folder* and return how many were removed."""
    folder = Path(folder)
    if not folder.is_dir():
        return 0
    removed = 0
    for cov_file in folder.rglob(f"*{_COV_SUFFIX}"):
        if cov_file.is_file():
            cov_file.unlink()
            removed += 1
    logger.debug("Removed %d count file(s) under %s", removed, folder)
    return removed
