"""Tests for genhtml-driven HTML reports (reporters/html.py)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from linecov.config import LinecovConfig, ReportConfig
from linecov.reporters.html import HtmlReportError, generate_html, report_title
from linecov.utils.subprocess_runner import SubprocessError, SubprocessResult


def _ok() -> SubprocessResult:
    return SubprocessResult(returncode=0, stdout="Overall coverage rate", stderr="", success=True)


@pytest.fixture
def config(tmp_path: Path) -> LinecovConfig:
    cfg = LinecovConfig(root=str(tmp_path))
    cfg.tracefile_path.parent.mkdir(parents=True)
    cfg.tracefile_path.write_text("SF:src/Foo.jl\nDA:1,1\nend_of_record\n", encoding="utf-8")
    return cfg


# ── report_title ─────────────────────────────────────────────────


@patch("linecov.reporters.html.current_branch", return_value="main")
def test_report_title_uses_branch(_branch: MagicMock) -> None:
    assert report_title("/pkg") == "on branch main"


@patch("linecov.reporters.html.current_branch", return_value=None)
def test_report_title_unknown_branch(_branch: MagicMock) -> None:
    assert report_title("/pkg") == "on branch unknown"


# ── generate_html ────────────────────────────────────────────────


@patch("linecov.reporters.html.current_branch", return_value="dev")
@patch("linecov.reporters.html.run_subprocess", new_callable=AsyncMock)
async def test_generate_html_runs_genhtml(
    mock_run: AsyncMock, _branch: MagicMock, config: LinecovConfig, tmp_path: Path
) -> None:
    mock_run.return_value = _ok()
    out = tmp_path / "html"

    index = await generate_html(config, output_dir=out)

    assert index == out / "index.html"
    command = mock_run.call_args.args[0]
    assert command == [
        "genhtml",
        "-t",
        "on branch dev",
        "-o",
        str(out),
        str(config.tracefile_path),
    ]
    assert mock_run.call_args.kwargs["cwd"] == Path(config.root)


@patch("linecov.reporters.html.current_branch", return_value="dev")
@patch("linecov.reporters.html.run_subprocess", new_callable=AsyncMock)
async def test_generate_html_defaults_to_configured_dir(
    mock_run: AsyncMock, _branch: MagicMock, config: LinecovConfig, tmp_path: Path
) -> None:
    mock_run.return_value = _ok()
    config.report = ReportConfig(genhtml="/opt/genhtml", html_dir=str(tmp_path / "site"))

    index = await generate_html(config)

    assert index == tmp_path / "site" / "index.html"
    assert mock_run.call_args.args[0][0] == "/opt/genhtml"


@patch("linecov.reporters.html.current_branch", return_value="dev")
@patch("linecov.reporters.html.run_subprocess", new_callable=AsyncMock)
async def test_generate_html_temporary_dir(
    mock_run: AsyncMock, _branch: MagicMock, config: LinecovConfig
) -> None:
    mock_run.return_value = _ok()

    index = await generate_html(config)

    assert index.parent.name.startswith("linecov-html-")
    assert index.parent.is_dir()


@patch("linecov.reporters.html.webbrowser.open")
@patch("linecov.reporters.html.current_branch", return_value="dev")
@patch("linecov.reporters.html.run_subprocess", new_callable=AsyncMock)
async def test_generate_html_opens_browser(
    mock_run: AsyncMock,
    _branch: MagicMock,
    mock_open: MagicMock,
    config: LinecovConfig,
    tmp_path: Path,
) -> None:
    mock_run.return_value = _ok()

    index = await generate_html(config, output_dir=tmp_path / "html", open_browser=True)

    mock_open.assert_called_once_with(index.resolve().as_uri())


async def test_generate_html_missing_tracefile(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Tracefile not found"):
        await generate_html(LinecovConfig(root=str(tmp_path)))


@patch("linecov.reporters.html.current_branch", return_value="dev")
@patch("linecov.reporters.html.run_subprocess", new_callable=AsyncMock)
async def test_generate_html_genhtml_fails(
    mock_run: AsyncMock, _branch: MagicMock, config: LinecovConfig
) -> None:
    mock_run.return_value = SubprocessResult(
        returncode=1, stdout="", stderr="genhtml: ERROR", success=False
    )

    with pytest.raises(HtmlReportError, match="lcov is installed"):
        await generate_html(config)


@patch("linecov.reporters.html.current_branch", return_value="dev")
@patch("linecov.reporters.html.run_subprocess", new_callable=AsyncMock)
async def test_generate_html_genhtml_missing(
    mock_run: AsyncMock, _branch: MagicMock, config: LinecovConfig
) -> None:
    mock_run.side_effect = SubprocessError(
        "Command not found: genhtml",
        result=SubprocessResult(returncode=-1, stdout="", stderr="", success=False),
    )

    with pytest.raises(HtmlReportError) as exc_info:
        await generate_html(config)
    assert exc_info.value.__cause__ is None


@patch("linecov.reporters.html.current_branch", return_value="dev")
@patch("linecov.reporters.html.run_subprocess", new_callable=AsyncMock)
async def test_generate_html_uses_resolved_executable(
    mock_run: AsyncMock, _branch: MagicMock, config: LinecovConfig, tmp_path: Path
) -> None:
    mock_run.return_value = _ok()

    await generate_html(config, output_dir=tmp_path / "html", executable="/usr/bin/genhtml")

    assert mock_run.call_args.args[0][0] == "/usr/bin/genhtml"
