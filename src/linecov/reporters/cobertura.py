"""LCOV tracefile to Cobertura XML conversion.

Conversion runs in two phases. :func:`parse_tracefile` folds the tracefile
records into a :class:`CoberturaModel` (package -> class -> line), and
:func:`build_xml` turns the model into a ``<coverage>`` element tree that CI
systems (Jenkins, GitLab, Azure DevOps) understand.

Packages are named after the directory of each source file relative to the
base directory (``src/foo/bar.jl`` -> ``src.foo``); classes after the whole
relative path (``src.foo.bar.jl``).
"""

from __future__ import annotations

import logging
import os
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from linecov import __version__
from linecov.reporters.lcov import (
    LCOV_BRDA,
    LCOV_DA,
    LCOV_END,
    LCOV_FN,
    LCOV_FNDA,
    LCOV_SF,
    TraceFormatError,
    parse_da,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_ZERO_RATE = "0.0"
_BRDA_PARTS = 4
_NOT_EXECUTED = "-"

__all__ = [
    "ClassCoverage",
    "CoberturaModel",
    "CoberturaXMLReporter",
    "CoverageTotals",
    "LineRecord",
    "MethodRecord",
    "PackageRecord",
    "TraceFormatError",
    "build_xml",
    "convert",
    "parse_tracefile",
]


def _rate(covered: int, total: int) -> str:
    if total == 0:
        return _ZERO_RATE
    return str(covered / total)


# ── Model ────────────────────────────────────────────────────────


@dataclass
class CoverageTotals:
    """Running line and branch totals of a class, package or report."""

    lines_total: int = 0
    lines_covered: int = 0
    branches_total: int = 0
    branches_covered: int = 0

    @property
    def line_rate(self) -> str:
        return _rate(self.lines_covered, self.lines_total)

    @property
    def branch_rate(self) -> str:
        return _rate(self.branches_covered, self.branches_total)

    def add(self, other: CoverageTotals) -> None:
        self.lines_total += other.lines_total
        self.lines_covered += other.lines_covered
        self.branches_total += other.branches_total
        self.branches_covered += other.branches_covered


@dataclass
class LineRecord:
    """Hits and branch counters of one source line."""

    hits: int = 0
    branch: bool = False
    branches_total: int = 0
    branches_covered: int = 0

    @property
    def condition_coverage(self) -> str:
        """Human readable branch coverage, e.g. ``50% (1/2)``."""
        percent = 100 * self.branches_covered // self.branches_total if self.branches_total else 0
        return f"{percent}% ({self.branches_covered}/{self.branches_total})"


@dataclass
class MethodRecord:
    """A function declared in a source file."""

    line: int
    hits: int | None = None
    """Observed call count, None until an FNDA record is seen."""


@dataclass
class ClassCoverage:
    """Coverage of one source file."""

    name: str
    filename: str
    lines: dict[int, LineRecord] = field(default_factory=dict)
    methods: dict[str, MethodRecord] = field(default_factory=dict)
    totals: CoverageTotals = field(default_factory=CoverageTotals)


@dataclass
class PackageRecord:
    """Classes of one package directory and their combined totals."""

    name: str
    classes: dict[str, ClassCoverage] = field(default_factory=dict)
    totals: CoverageTotals = field(default_factory=CoverageTotals)


@dataclass
class CoberturaModel:
    """Everything needed to emit a Cobertura report."""

    base_dir: str
    packages: dict[str, PackageRecord] = field(default_factory=dict)
    summary: CoverageTotals = field(default_factory=CoverageTotals)
    timestamp: int = 0


# ── Parse phase ──────────────────────────────────────────────────


class _TraceParser:
    """Accumulates one tracefile block at a time into a :class:`CoberturaModel`.

    The per-file state (current package, class, line and method tables and
    totals) is reset on every ``SF`` record and folded into the model on
    ``end_of_record``. A file seen again, as in concatenated traces, resumes
    its earlier line and method tables, so the first count of a line still
    wins and only the new lines are added to the totals.
    """

    def __init__(self, base_dir: str) -> None:
        self.model = CoberturaModel(base_dir=base_dir)
        self._counted_by_class: dict[str, set[int]] = {}
        self._reset()

    def _reset(self) -> None:
        self.package_name: str | None = None
        self.class_name: str | None = None
        self.filename: str | None = None
        self.lines: dict[int, LineRecord] = {}
        self.counted_lines: set[int] = set()
        self.methods: dict[str, MethodRecord] = {}
        self.totals = CoverageTotals()

    def feed(self, raw_line: str) -> None:
        line = raw_line.strip()
        if line == LCOV_END:
            self._end_record()
            return
        key, sep, value = line.partition(":")
        if not sep:
            return
        handler = self._handlers.get(key)
        if handler is not None:
            handler(self, value.strip())

    def _start_file(self, path: str) -> None:
        self._reset()
        relative = os.path.relpath(path, self.model.base_dir) if os.path.isabs(path) else path
        relative = Path(relative).as_posix()
        parts = relative.split("/")
        self.filename = relative
        self.package_name = ".".join(parts[:-1])
        self.class_name = ".".join(parts)
        existing = self._existing_class()
        if existing is not None:
            self.lines = existing.lines
            self.methods = existing.methods
            self.counted_lines = self._counted_by_class[self.class_name]

    def _existing_class(self) -> ClassCoverage | None:
        if self.package_name is None or self.class_name is None:
            return None
        package = self.model.packages.get(self.package_name)
        return None if package is None else package.classes.get(self.class_name)

    def _line_hits(self, value: str) -> None:
        line_number, hits = parse_da(value)
        if line_number in self.counted_lines:
            return
        self.counted_lines.add(line_number)
        self.lines.setdefault(line_number, LineRecord()).hits = hits
        self.totals.lines_total += 1
        if hits > 0:
            self.totals.lines_covered += 1

    def _branch(self, value: str) -> None:
        parts = value.split(",")
        if len(parts) < _BRDA_PARTS:
            raise TraceFormatError(f"Malformed BRDA record: {value!r}")
        taken = parts[3].strip()
        try:
            line_number = int(parts[0])
            hits = 0 if taken == _NOT_EXECUTED else int(taken)
        except ValueError as exc:
            raise TraceFormatError(f"Unparsable BRDA record: {value!r}") from exc
        record = self.lines.setdefault(line_number, LineRecord())
        record.branch = True
        record.branches_total += 1
        self.totals.branches_total += 1
        if hits > 0:
            record.branches_covered += 1
            self.totals.branches_covered += 1

    def _function(self, value: str) -> None:
        line_number, sep, name = value.partition(",")
        if not sep:
            raise TraceFormatError(f"Malformed FN record: {value!r}")
        try:
            declared = int(line_number)
        except ValueError as exc:
            raise TraceFormatError(f"Unparsable FN record: {value!r}") from exc
        method = self.methods.setdefault(name.strip(), MethodRecord(line=declared))
        if method.line == 0:
            method.line = declared

    def _function_hits(self, value: str) -> None:
        hits, sep, name = value.partition(",")
        if not sep:
            raise TraceFormatError(f"Malformed FNDA record: {value!r}")
        try:
            count = int(hits)
        except ValueError as exc:
            raise TraceFormatError(f"Unparsable FNDA record: {value!r}") from exc
        method = self.methods.setdefault(name.strip(), MethodRecord(line=0))
        if method.hits is None:
            method.hits = count

    def _end_record(self) -> None:
        if self.class_name is None or self.package_name is None or self.filename is None:
            self._reset()
            return
        package = self.model.packages.get(self.package_name)
        if package is None:
            package = PackageRecord(name=self.package_name)
            self.model.packages[self.package_name] = package
        existing = package.classes.get(self.class_name)
        if existing is None:
            package.classes[self.class_name] = ClassCoverage(
                name=self.class_name,
                filename=self.filename,
                lines=self.lines,
                methods=self.methods,
                totals=self.totals,
            )
            self._counted_by_class[self.class_name] = self.counted_lines
        else:
            existing.totals.add(self.totals)
        package.totals.add(self.totals)
        self.model.summary.add(self.totals)
        self._reset()

    _handlers = {
        LCOV_SF: _start_file,
        LCOV_DA: _line_hits,
        LCOV_BRDA: _branch,
        LCOV_FN: _function,
        LCOV_FNDA: _function_hits,
    }


def parse_trace_lines(lines: Iterable[str], base_dir: str | Path) -> CoberturaModel:
    """Fold tracefile lines into a :class:`CoberturaModel`.

    Unknown record types are ignored. A ``BRDA`` record does not need a
    preceding ``DA`` record for its line.
    """
    parser = _TraceParser(str(base_dir))
    for line in lines:
        parser.feed(line)
    return parser.model


def parse_tracefile(trace_path: str | Path, base_dir: str | Path) -> CoberturaModel:
    """Parse an LCOV tracefile into a :class:`CoberturaModel`."""
    with Path(trace_path).open(encoding="utf-8") as fh:
        model = parse_trace_lines(fh, base_dir)
    logger.debug(
        "Parsed %s: %d package(s), %d/%d lines covered",
        trace_path,
        len(model.packages),
        model.summary.lines_covered,
        model.summary.lines_total,
    )
    return model


# ── Emit phase ───────────────────────────────────────────────────


def _line_element(parent: ET.Element, number: int, record: LineRecord) -> None:
    elem = ET.SubElement(parent, "line")
    elem.set("number", str(number))
    elem.set("hits", str(record.hits))
    elem.set("branch", "true" if record.branch else "false")
    if record.branch:
        elem.set("condition-coverage", record.condition_coverage)


def _method_element(parent: ET.Element, name: str, method: MethodRecord) -> None:
    hits = method.hits or 0
    rate = "1.0" if hits > 0 else "0.0"
    elem = ET.SubElement(parent, "method")
    elem.set("name", name)
    elem.set("signature", "")
    elem.set("line-rate", rate)
    elem.set("branch-rate", rate)
    lines = ET.SubElement(elem, "lines")
    _line_element(lines, method.line, LineRecord(hits=hits))


def _class_element(parent: ET.Element, cls: ClassCoverage) -> None:
    elem = ET.SubElement(parent, "class")
    elem.set("name", cls.name)
    elem.set("filename", cls.filename)
    elem.set("line-rate", cls.totals.line_rate)
    elem.set("branch-rate", cls.totals.branch_rate)
    elem.set("complexity", "0")
    methods = ET.SubElement(elem, "methods")
    for name, method in cls.methods.items():
        _method_element(methods, name, method)
    lines = ET.SubElement(elem, "lines")
    for number in sorted(cls.lines):
        _line_element(lines, number, cls.lines[number])


def build_xml(model: CoberturaModel) -> ET.Element:
    """Build the Cobertura element tree of *model*."""
    summary = model.summary
    root = ET.Element("coverage")
    root.set("line-rate", summary.line_rate)
    root.set("branch-rate", summary.branch_rate)
    root.set("lines-covered", str(summary.lines_covered))
    root.set("lines-valid", str(summary.lines_total))
    root.set("branches-covered", str(summary.branches_covered))
    root.set("branches-valid", str(summary.branches_total))
    root.set("complexity", "0")
    root.set("timestamp", str(model.timestamp))
    root.set("version", __version__)

    sources = ET.SubElement(root, "sources")
    ET.SubElement(sources, "source").text = model.base_dir

    packages = ET.SubElement(root, "packages")
    for package in model.packages.values():
        pkg_elem = ET.SubElement(packages, "package")
        pkg_elem.set("name", package.name)
        pkg_elem.set("line-rate", package.totals.line_rate)
        pkg_elem.set("branch-rate", package.totals.branch_rate)
        pkg_elem.set("complexity", "0")
        classes = ET.SubElement(pkg_elem, "classes")
        for cls in package.classes.values():
            _class_element(classes, cls)
    return root


def convert(
    trace_path: str | Path, base_dir: str | Path, *, timestamp: int | None = None
) -> ET.ElementTree:
    """Convert an LCOV tracefile into a Cobertura XML document."""
    model = parse_tracefile(trace_path, base_dir)
    model.timestamp = int(time.time()) if timestamp is None else timestamp
    return ET.ElementTree(build_xml(model))


class CoberturaXMLReporter:
    """Write Cobertura XML reports from LCOV tracefiles."""

    def generate(self, trace_path: str | Path, base_dir: str | Path, output_path: Path) -> Path:
        """Convert *trace_path* and write the XML to *output_path*.

        Args:
            trace_path: LCOV tracefile to convert.
            base_dir: Directory that source paths are made relative to.
            output_path: Path to write the XML file.

        Returns:
            The path to the generated XML file.
        """
        tree = convert(trace_path, base_dir)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        ET.indent(tree, space="  ")
        tree.write(str(output_path), encoding="unicode", xml_declaration=True)
        logger.info("Cobertura XML report written to %s", output_path)
        return output_path

    def generate_string(self, trace_path: str | Path, base_dir: str | Path) -> str:
        """Return the Cobertura XML of *trace_path* as a string."""
        root = convert(trace_path, base_dir).getroot()
        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="unicode", xml_declaration=True)
