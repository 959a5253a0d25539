"""linecov CLI: top-level command group."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from linecov import __version__
from linecov.config import LinecovConfig, load_config, validate_config
from linecov.pipeline import (
    TestRunError,
    clean_coverage,
    coverage_from_trace,
    generate_coverage,
    write_xml,
)
from linecov.reporters.cobertura import CoberturaXMLReporter, TraceFormatError
from linecov.reporters.html import HtmlReportError, generate_html
from linecov.reporters.terminal import reporter
from linecov.reporters.threshold import exit_with_verdict, report_coverage
from linecov.utils.prerequisites import check_genhtml

if TYPE_CHECKING:
    from linecov.models.coverage import PackageCoverage

logger = logging.getLogger(__name__)
console = Console()

_PATH_ARGUMENT = click.argument(
    "path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
)


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(path: str) -> LinecovConfig:
    try:
        return load_config(path)
    except (yaml.YAMLError, ValueError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


def _generate(config: LinecovConfig, **kwargs: Any) -> PackageCoverage:
    """Run the coverage pipeline, showing the partial summary if tests fail."""
    if kwargs.get("run_test", True):
        message = "Running tests with coverage..."
    else:
        message = "Collecting coverage..."
    try:
        with reporter.create_status(message):
            return asyncio.run(generate_coverage(config, **kwargs))
    except TestRunError as e:
        if e.coverage is not None:
            reporter.print_coverage(e.coverage, show_gaps=config.coverage.show_gaps)
        if e.result is not None and e.result.stderr:
            console.print(e.result.stderr, markup=False, highlight=False)
        reporter.print_error(str(e))
        raise click.Abort from e


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.version_option(version=__version__, prog_name="linecov")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """linecov: line coverage summaries, LCOV traces and Cobertura reports."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


@cli.command()
@_PATH_ARGUMENT
@click.option(
    "--run-tests/--no-run-tests",
    default=True,
    show_default=True,
    help="Run the test command before collecting counts.",
)
@click.option(
    "-f",
    "--folder",
    "folders",
    multiple=True,
    help="Folder to scan for counts (repeatable). Defaults to coverage.folders.",
)
@click.option("--file", "files", multiple=True, help="Extra source file to report (repeatable).")
@click.option("--test-arg", "test_args", multiple=True, help="Argument passed to the test run.")
@click.option("--show-gaps", is_flag=True, help="List uncovered line ranges per file.")
@click.option("--html", "html", is_flag=True, help="Render an HTML report with genhtml.")
@click.option(
    "--html-dir",
    type=click.Path(file_okay=False, resolve_path=True),
    help="Directory for the HTML report.",
)
@click.option("--open", "open_browser", is_flag=True, help="Open the HTML report in a browser.")
@click.option("--xml", "xml", is_flag=True, help="Write a Cobertura XML report.")
@click.option(
    "--xml-output",
    type=click.Path(dir_okay=False, resolve_path=True),
    help="Path of the Cobertura XML report.",
)
def generate(
    path: str,
    folders: tuple[str, ...],
    files: tuple[str, ...],
    test_args: tuple[str, ...],
    html_dir: str | None,
    xml_output: str | None,
    *,
    run_tests: bool,
    show_gaps: bool,
    html: bool,
    open_browser: bool,
    xml: bool,
) -> None:
    """Generate coverage for the package at PATH and print its summary.

    Example:
      linecov generate --no-run-tests --show-gaps --xml
    """
    config = _load(path)
    coverage = _generate(
        config,
        run_test=run_tests,
        test_args=test_args,
        folders=list(folders) or None,
        files=files,
    )
    reporter.print_coverage(coverage, show_gaps=show_gaps or config.coverage.show_gaps)
    reporter.print_info(f"Tracefile written to {config.tracefile_path}")

    if xml or xml_output:
        output = write_xml(config, xml_output)
        reporter.print_success(f"Cobertura XML written to {output}")

    if html or html_dir or open_browser:
        check = check_genhtml(config.report.genhtml)
        try:
            index = asyncio.run(
                generate_html(
                    config,
                    output_dir=html_dir,
                    open_browser=open_browser,
                    executable=check.path,
                )
            )
        except HtmlReportError as e:
            reporter.print_error(str(e))
            raise click.Abort from e
        reporter.print_success(f"HTML report written to {index}")


@cli.command()
@_PATH_ARGUMENT
@click.option(
    "--target",
    type=click.FloatRange(0, 100),
    default=None,
    help="Target coverage percentage. Defaults to coverage.target (80).",
)
@click.option(
    "--run-tests/--no-run-tests",
    default=True,
    show_default=True,
    help="Run the test command before collecting counts.",
)
@click.option("--from-trace", is_flag=True, help="Use the existing tracefile, run nothing.")
@click.option("--show-gaps", is_flag=True, help="List uncovered line ranges per file.")
@click.option("--no-table", is_flag=True, help="Only print the verdict.")
def report(
    path: str,
    target: float | None,
    *,
    run_tests: bool,
    from_trace: bool,
    show_gaps: bool,
    no_table: bool,
) -> None:
    """Print coverage and exit 0 if the target was met, 1 otherwise.

    Example:
      linecov report --target 90
    """
    config = _load(path)
    if from_trace:
        try:
            coverage = coverage_from_trace(config)
        except (FileNotFoundError, TraceFormatError) as e:
            reporter.print_error(str(e))
            raise click.Abort from e
    else:
        coverage = _generate(config, run_test=run_tests)

    result = report_coverage(
        coverage,
        config.coverage.target if target is None else target,
        show_table=not no_table,
        show_gaps=show_gaps or config.coverage.show_gaps,
    )
    exit_with_verdict(result)


@cli.command("xml")
@click.argument("tracefile", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option(
    "--base-dir",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Directory source paths are reported relative to.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, resolve_path=True),
    help="Output file. Prints to stdout when omitted.",
)
def xml_command(tracefile: str, base_dir: str, output: str | None) -> None:
    """Convert an LCOV TRACEFILE to Cobertura XML.

    Example:
      linecov xml coverage/lcov.info -o coverage/cobertura.xml
    """
    xml_reporter = CoberturaXMLReporter()
    try:
        if output is None:
            click.echo(xml_reporter.generate_string(tracefile, base_dir))
            return
        xml_reporter.generate(tracefile, base_dir, Path(output))
    except TraceFormatError as e:
        reporter.print_error(f"Invalid tracefile: {e}")
        raise click.Abort from e
    reporter.print_success(f"Cobertura XML written to {output}")


@cli.command()
@_PATH_ARGUMENT
def clean(path: str) -> None:
    """Remove generated coverage artifacts of the package at PATH."""
    config = _load(path)
    clean_coverage(config)
    reporter.print_success(f"Cleaned coverage artifacts in {config.root}")


@cli.group("config")
def config_group() -> None:
    """Inspect `.linecov.yml` configuration."""


@config_group.command("show")
@_PATH_ARGUMENT
@click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Output as JSON instead of YAML.",
)
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration."""
    config_dict = asdict(_load(path))
    config_dict.pop("raw", None)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@_PATH_ARGUMENT
def config_validate(path: str) -> None:
    """Validate `.linecov.yml` configuration.

    Example:
      linecov config validate
    """
    errors = validate_config(_load(path))

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()
    raise click.Abort
