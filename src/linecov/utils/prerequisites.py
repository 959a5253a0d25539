"""Checks for the external tools linecov relies on."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MIN_GENHTML_VERSION = (1, 12)
_VERSION_RE = re.compile(r"(\d+)\.(\d+)")


@dataclass
class GenhtmlCheck:
    """Result of probing the ``genhtml`` executable."""

    installed: bool
    version: tuple[int, int] | None = None
    path: str | None = None

    @property
    def outdated(self) -> bool:
        return self.version is not None and self.version < MIN_GENHTML_VERSION


def parse_genhtml_version(output: str) -> tuple[int, int] | None:
    """Extract ``(major, minor)`` from ``genhtml --version`` output."""
    matches = _VERSION_RE.findall(output)
    if not matches:
        return None
    major, minor = matches[-1]
    return int(major), int(minor)


def check_genhtml(executable: str = "genhtml") -> GenhtmlCheck:
    """Probe ``genhtml``, warning when it is missing or too old for HTML reports."""
    path = shutil.which(executable)
    if path is None:
        logger.warning(
            "Could not find `%s`, you need to install lcov to generate HTML reports.", executable
        )
        return GenhtmlCheck(installed=False)

    try:
        result = subprocess.run(
            [path, "--version"], capture_output=True, text=True, check=False
        )
    except OSError as exc:
        logger.warning("Could not run `%s --version`: %s", executable, exc)
        return GenhtmlCheck(installed=True, path=path)

    version = parse_genhtml_version(result.stdout or result.stderr)
    check = GenhtmlCheck(installed=True, version=version, path=path)
    if version is None:
        logger.warning("Could not parse `%s --version` output", executable)
    elif check.outdated:
        logger.warning(
            "The installed version of genhtml is %d.%d, HTML generation may not work "
            "(%d.%d or newer is recommended).",
            *version,
            *MIN_GENHTML_VERSION,
        )
    return check
