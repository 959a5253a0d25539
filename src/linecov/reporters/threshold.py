"""Coverage target verdicts.

:func:`evaluate` is pure; :func:`report_coverage` prints the outcome and
:func:`exit_with_verdict` is the only place that ends the process.
"""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, NoReturn

from linecov.reporters.terminal import CLIReporter, reporter

if TYPE_CHECKING:
    from linecov.models.coverage import PackageCoverage

logger = logging.getLogger(__name__)

DEFAULT_TARGET = 80.0


@dataclass(frozen=True)
class ThresholdResult:
    """Outcome of comparing package coverage against a target."""

    met: bool
    """True when the coverage percentage reaches the target."""

    target: float
    """Target coverage percentage."""

    percentage: float
    """Actual coverage percentage, NaN when nothing is tracked."""

    @property
    def exit_code(self) -> int:
        return 0 if self.met else 1


def evaluate(coverage: PackageCoverage, target: float = DEFAULT_TARGET) -> ThresholdResult:
    """Compare the coverage of a package against *target*.

    An undefined percentage (no tracked lines) never meets the target.
    """
    percentage = coverage.coverage_percentage
    met = not math.isnan(percentage) and percentage >= target
    return ThresholdResult(met=met, target=target, percentage=percentage)


def _format_target(target: float) -> str:
    return f"{target:g}%"


def report_coverage(
    coverage: PackageCoverage,
    target: float = DEFAULT_TARGET,
    *,
    show_table: bool = True,
    show_gaps: bool = False,
    out: CLIReporter | None = None,
) -> ThresholdResult:
    """Print the coverage table and whether *target* was met."""
    out = out or reporter
    result = evaluate(coverage, target)
    if show_table:
        out.print_coverage(coverage, show_gaps=show_gaps)
    verdict = "was met" if result.met else "wasn't met"
    color = "green" if result.met else "red"
    out.console.print(
        f" Target coverage {verdict} ([bold {color}]{_format_target(target)}[/bold {color}])"
    )
    logger.debug("Coverage %.2f%% against target %s", result.percentage, target)
    return result


def exit_with_verdict(result: ThresholdResult) -> NoReturn:
    """Exit the process with status 0 when the target was met, 1 otherwise."""
    sys.exit(result.exit_code)
