"""LCOV tracefile writer and reader.

Grammar, one block per source file::

    SF:<source path>
    DA:<line number>,<hit count>
    LH:<lines hit>
    LF:<lines found>
    end_of_record
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from linecov.models.coverage import RawFileCoverage

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

LCOV_SF = "SF"
LCOV_DA = "DA"
LCOV_BRDA = "BRDA"
LCOV_FN = "FN"
LCOV_FNDA = "FNDA"
LCOV_LH = "LH"
LCOV_LF = "LF"
LCOV_END = "end_of_record"
_DA_MIN_PARTS = 2


class TraceFormatError(ValueError):
    """Raised when a tracefile record cannot be parsed."""


def format_record(raw: RawFileCoverage) -> str:
    """Return the tracefile block for one file."""
    lines = [f"{LCOV_SF}:{raw.filename}"]
    hit = found = 0
    for line_number, count in enumerate(raw.coverage, start=1):
        if count is None:
            continue
        lines.append(f"{LCOV_DA}:{line_number},{count}")
        found += 1
        if count > 0:
            hit += 1
    lines.append(f"{LCOV_LH}:{hit}")
    lines.append(f"{LCOV_LF}:{found}")
    lines.append(LCOV_END)
    return "\n".join(lines) + "\n"


def write_tracefile(path: str | Path, raw_files: Iterable[RawFileCoverage]) -> Path:
    """Write *raw_files* to an LCOV tracefile, overwriting any previous one.

    Missing parent directories are created.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8") as fh:
        for raw in raw_files:
            fh.write(format_record(raw))
            count += 1
    logger.info("LCOV tracefile with %d record(s) written to %s", count, path)
    return path


def parse_da(value: str) -> tuple[int, int]:
    """Parse the payload of a ``DA`` record into ``(line, hits)``.

    Trailing fields (checksums) are ignored.
    """
    parts = value.split(",")
    if len(parts) < _DA_MIN_PARTS:
        raise TraceFormatError(f"Malformed DA record: {value!r}")
    try:
        return int(parts[0].strip()), int(parts[1].strip())
    except ValueError as exc:
        raise TraceFormatError(f"Unparsable DA record: {value!r}") from exc


def read_tracefile(path: str | Path) -> list[RawFileCoverage]:
    """Read the ``DA`` records of a tracefile back into raw per-line counts.

    Lines without a ``DA`` record come back untracked. Repeated ``DA``
    records for the same line keep the first count.
    """
    records: list[RawFileCoverage] = []
    filename: str | None = None
    counts: dict[int, int] = {}

    def _flush() -> None:
        if filename is None:
            return
        size = max(counts, default=0)
        coverage = tuple(counts.get(n) for n in range(1, size + 1))
        records.append(RawFileCoverage(filename=filename, coverage=coverage))

    with Path(path).open(encoding="utf-8") as fh:
        for raw_line in fh:
            line = raw_line.strip()
            if line == LCOV_END:
                _flush()
                filename, counts = None, {}
                continue
            key, sep, value = line.partition(":")
            if not sep:
                continue
            if key == LCOV_SF:
                _flush()
                filename, counts = value.strip(), {}
            elif key == LCOV_DA and filename is not None:
                line_number, hits = parse_da(value)
                counts.setdefault(line_number, hits)
    _flush()
    logger.debug("Read %d record(s) from %s", len(records), path)
    return records
