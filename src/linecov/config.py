"""Configuration parsing from ``.linecov.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".linecov.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_TRUE_VALUES = {"true", "1", "yes", "on"}

_DEFAULT_TEST_COMMAND = (
    "julia",
    "--project=.",
    "-e",
    "import Pkg; Pkg.test(; coverage=true, test_args=ARGS)",
)


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {})
    if not isinstance(section, dict):
        return {}
    return section


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


def _str_list(value: Any, default: list[str]) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(item) for item in value]
    return list(default)


@dataclass
class CoverageConfig:
    """Where coverage artifacts live and how the summary is judged."""

    directory: str = "coverage"
    """Directory for coverage results, relative to the package root."""

    tracefile: str = "lcov.info"
    """LCOV tracefile name inside ``directory``."""

    target: float = 80.0
    """Minimum acceptable line coverage percentage."""

    show_gaps: bool = False
    """List the uncovered line ranges of each file in the summary table."""

    folders: list[str] = field(default_factory=lambda: ["src"])
    """Folders scanned for per-line execution counts."""

    source_suffixes: list[str] = field(default_factory=lambda: [".jl"])
    """Suffixes of the source files considered inside ``folders``."""

    clean: bool = True
    """Delete the ``.cov`` count files once the tracefile is written."""


@dataclass
class TestingConfig:
    """How the package's test suite is run with coverage enabled."""

    command: list[str] = field(default_factory=lambda: list(_DEFAULT_TEST_COMMAND))
    """Test command; extra test arguments are appended to it."""

    timeout: float | None = None
    """Maximum seconds for the test run, None for no limit."""


@dataclass
class ReportConfig:
    """Report generation configuration."""

    genhtml: str = "genhtml"
    """Executable used to render HTML reports."""

    html_dir: str = ""
    """Directory for HTML output; empty for a fresh temporary directory."""

    xml_filename: str = "cobertura.xml"
    """Cobertura XML file name inside the coverage directory."""


@dataclass
class LinecovConfig:
    """Top-level linecov configuration."""

    root: str
    """Package root directory."""

    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    testing: TestingConfig = field(default_factory=TestingConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML, after environment variable expansion."""

    @property
    def coverage_dir(self) -> Path:
        return Path(self.root) / self.coverage.directory

    @property
    def tracefile_path(self) -> Path:
        return self.coverage_dir / self.coverage.tracefile

    @property
    def xml_path(self) -> Path:
        return self.coverage_dir / self.report.xml_filename


def _parse_coverage_config(raw: dict[str, Any]) -> CoverageConfig:
    """Parse coverage configuration from raw YAML."""
    coverage_raw = _section(raw, "coverage")
    default = CoverageConfig()

    return CoverageConfig(
        directory=str(
            coverage_raw.get("directory", os.environ.get("LINECOV_COVERAGE_DIR", default.directory))
        ),
        tracefile=str(coverage_raw.get("tracefile", default.tracefile)),
        target=float(coverage_raw.get("target", os.environ.get("LINECOV_TARGET", default.target))),
        show_gaps=_flag(coverage_raw.get("show_gaps"), default.show_gaps),
        folders=_str_list(coverage_raw.get("folders"), default.folders),
        source_suffixes=_str_list(coverage_raw.get("source_suffixes"), default.source_suffixes),
        clean=_flag(coverage_raw.get("clean"), default.clean),
    )


def _parse_testing_config(raw: dict[str, Any]) -> TestingConfig:
    """Parse test command configuration from raw YAML."""
    testing_raw = _section(raw, "testing")
    default = TestingConfig()

    command = testing_raw.get("command")
    if isinstance(command, str):
        command = command.split()
    timeout = testing_raw.get("timeout")

    return TestingConfig(
        command=_str_list(command, default.command),
        timeout=float(timeout) if timeout is not None else None,
    )


def _parse_report_config(raw: dict[str, Any]) -> ReportConfig:
    """Parse report configuration from raw YAML."""
    report_raw = _section(raw, "report")
    default = ReportConfig()

    return ReportConfig(
        genhtml=str(report_raw.get("genhtml", default.genhtml)),
        html_dir=str(report_raw.get("html_dir", default.html_dir) or ""),
        xml_filename=str(report_raw.get("xml_filename", default.xml_filename)),
    )


def load_config(root: str | Path) -> LinecovConfig:
    """Load and parse the ``.linecov.yml`` configuration of a package.

    Falls back to defaults and environment variables when the YAML file is
    missing or incomplete.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            logger.warning("Ignoring %s: expected a mapping at the top level", config_file)

    return LinecovConfig(
        root=str(root_path),
        coverage=_parse_coverage_config(raw),
        testing=_parse_testing_config(raw),
        report=_parse_report_config(raw),
        raw=raw,
    )


def _validate_coverage_config(coverage: CoverageConfig) -> list[str]:
    """Validate coverage settings."""
    max_percentage = 100.0
    errors: list[str] = []

    if not 0.0 <= coverage.target <= max_percentage:
        errors.append(f"coverage.target must be between 0 and 100 (got: {coverage.target})")

    if not coverage.directory:
        errors.append("coverage.directory must not be empty")

    if not coverage.tracefile:
        errors.append("coverage.tracefile must not be empty")

    if not coverage.folders:
        errors.append("coverage.folders must list at least one folder")

    return errors


def _validate_testing_config(testing: TestingConfig) -> list[str]:
    """Validate test command settings."""
    errors: list[str] = []

    if testing.timeout is not None and testing.timeout <= 0:
        errors.append(f"testing.timeout must be positive (got: {testing.timeout})")

    return errors


def validate_config(config: LinecovConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.root:
        errors.append("root is required")

    errors.extend(_validate_coverage_config(config.coverage))
    errors.extend(_validate_testing_config(config.testing))

    if not config.report.xml_filename:
        errors.append("report.xml_filename must not be empty")

    return errors
