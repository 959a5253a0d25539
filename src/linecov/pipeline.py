"""Coverage generation pipeline.

Runs the package's tests with coverage enabled, collects the per-line counts,
persists them as an LCOV tracefile and aggregates them into a
:class:`~linecov.models.coverage.PackageCoverage`.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from linecov.adapters.cov_files import clean_folder, collect
from linecov.analyzers.coverage import aggregate
from linecov.reporters.cobertura import CoberturaXMLReporter
from linecov.reporters.lcov import read_tracefile, write_tracefile
from linecov.reporters.terminal import format_percentage
from linecov.utils.subprocess_runner import SubprocessError, SubprocessResult, run_subprocess

if TYPE_CHECKING:
    from collections.abc import Sequence

    from linecov.config import LinecovConfig
    from linecov.models.coverage import PackageCoverage

logger = logging.getLogger(__name__)


class TestRunError(Exception):
    """Raised when the package's test suite fails or cannot be run."""

    __test__ = False

    def __init__(
        self,
        message: str,
        result: SubprocessResult | None = None,
        coverage: PackageCoverage | None = None,
    ) -> None:
        """Initialize with error message, test run result and coverage.

        Args:
            message: Error description.
            result: Captured output of the failed test run, if it ran.
            coverage: Coverage aggregated after the failed run, if any.
        """
        super().__init__(message)
        self.result = result
        self.coverage = coverage


async def run_tests(config: LinecovConfig, test_args: Sequence[str] = ()) -> SubprocessResult:
    """Run the configured test command in the package root.

    Raises:
        TestRunError: If no command is configured, it cannot be started,
            times out, or exits with a non-zero status.
    """
    if not config.testing.command:
        raise TestRunError("No test command configured (testing.command in .linecov.yml)")

    command = [*config.testing.command, *test_args]
    try:
        result = await run_subprocess(
            command, cwd=Path(config.root), timeout=config.testing.timeout
        )
    except SubprocessError as exc:
        raise TestRunError(str(exc), result=exc.result) from exc

    if result.timed_out:
        raise TestRunError(f"Test run timed out after {config.testing.timeout}s", result=result)
    if not result.success:
        raise TestRunError(f"Test run failed with exit code {result.returncode}", result=result)
    return result


def _collect_and_persist(
    config: LinecovConfig, folders: Sequence[str], files: Sequence[str]
) -> PackageCoverage:
    raw_files = collect(config.root, folders, files, config.coverage.source_suffixes)
    write_tracefile(config.tracefile_path, raw_files)
    if config.coverage.clean:
        for folder in folders:
            clean_folder(Path(config.root) / folder)
    return aggregate(raw_files, config.root)


async def generate_coverage(
    config: LinecovConfig,
    *,
    run_test: bool = True,
    test_args: Sequence[str] = (),
    folders: Sequence[str] | None = None,
    files: Sequence[str] = (),
) -> PackageCoverage:
    """Generate a PackageCoverage summarizing the coverage of a package.

    The test step may be skipped with ``run_test=False`` when the counts were
    produced by another tool. The LCOV tracefile is written to
    ``<coverage dir>/<tracefile>``.

    If the test run fails the counts it left behind are still aggregated and
    persisted; the summary is logged and the :class:`TestRunError` re-raised
    with the coverage attached.
    """
    folders = list(config.coverage.folders if folders is None else folders)
    test_error: TestRunError | None = None
    if run_test:
        try:
            await run_tests(config, test_args)
        except TestRunError as exc:
            if exc.result is None:
                raise
            test_error = exc

    coverage = _collect_and_persist(config, folders, files)

    if test_error is not None:
        logger.warning(
            "Tests failed; coverage of the failed run: %d/%d lines (%s)",
            coverage.lines_hit,
            coverage.lines_tracked,
            format_percentage(coverage.coverage_percentage),
        )
        test_error.coverage = coverage
        raise test_error
    return coverage


def coverage_from_trace(config: LinecovConfig) -> PackageCoverage:
    """Aggregate the coverage recorded in the package's existing tracefile."""
    return aggregate(read_tracefile(config.tracefile_path), config.root)


def write_xml(config: LinecovConfig, output: str | Path | None = None) -> Path:
    """Convert the package's tracefile to a Cobertura XML report."""
    target = Path(output) if output is not None else config.xml_path
    return CoberturaXMLReporter().generate(config.tracefile_path, config.root, target)


def clean_coverage(config: LinecovConfig) -> None:
    """Remove the coverage directory and leftover ``.cov`` files of a package."""
    coverage_dir = config.coverage_dir
    if coverage_dir.is_dir():
        shutil.rmtree(coverage_dir)
        logger.info("Removed %s", coverage_dir)
    for folder in config.coverage.folders:
        clean_folder(Path(config.root) / folder)
