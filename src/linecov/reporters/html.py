"""HTML coverage reports rendered by lcov's ``genhtml``."""

from __future__ import annotations

import logging
import tempfile
import webbrowser
from pathlib import Path
from typing import TYPE_CHECKING

from linecov.utils.git import current_branch
from linecov.utils.subprocess_runner import SubprocessError, run_subprocess

if TYPE_CHECKING:
    from linecov.config import LinecovConfig

logger = logging.getLogger(__name__)

_REMEDIATION = "Failed to run genhtml. Check that lcov is installed and on PATH."


class HtmlReportError(Exception):
    """Raised when the HTML report could not be rendered."""


def report_title(package_dir: str | Path) -> str:
    """Return the HTML report title for the package's current git branch."""
    branch = current_branch(package_dir)
    return f"on branch {branch or 'unknown'}"


async def generate_html(
    config: LinecovConfig,
    *,
    output_dir: str | Path | None = None,
    open_browser: bool = False,
    executable: str | None = None,
) -> Path:
    """Render the package's tracefile to HTML with ``genhtml``.

    Args:
        config: Configuration of the package; its tracefile must exist.
        output_dir: Destination directory. Defaults to ``report.html_dir``,
            or a fresh temporary directory when that is empty.
        open_browser: Open the generated index page in the default browser.
        executable: Resolved genhtml path; defaults to ``report.genhtml``.

    Returns:
        Path to the generated ``index.html``.

    Raises:
        HtmlReportError: If genhtml is missing or fails.
        FileNotFoundError: If the tracefile does not exist.
    """
    tracefile = config.tracefile_path
    if not tracefile.is_file():
        raise FileNotFoundError(f"Tracefile not found: {tracefile}")

    if output_dir is None:
        output_dir = config.report.html_dir or tempfile.mkdtemp(prefix="linecov-html-")
    out = Path(output_dir)

    command = [
        executable or config.report.genhtml,
        "-t",
        report_title(config.root),
        "-o",
        str(out),
        str(tracefile),
    ]
    try:
        result = await run_subprocess(command, cwd=Path(config.root))
    except SubprocessError as exc:
        logger.debug("genhtml could not be started: %s", exc.result.stderr)
        raise HtmlReportError(_REMEDIATION) from None

    if not result.success:
        logger.debug("genhtml exited with %d: %s", result.returncode, result.stderr)
        raise HtmlReportError(_REMEDIATION)

    index = out / "index.html"
    logger.info("Coverage HTML report written to %s", out)
    if open_browser:
        webbrowser.open(index.resolve().as_uri())
    return index
