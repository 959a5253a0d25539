"""Tests for the subprocess runner used for test commands and genhtml."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

from linecov.utils.subprocess_runner import SubprocessError, run_subprocess

# ── Basic Execution Tests ────────────────────────────────────────────


async def test_run_subprocess_success() -> None:
    result = await run_subprocess(["echo", "hello"])

    assert result.success
    assert result.returncode == 0
    assert "hello" in result.stdout
    assert result.timed_out is False
    assert result.duration_ms > 0


async def test_run_subprocess_with_working_directory(tmp_path: Path) -> None:
    (tmp_path / "lcov.info").write_text("")

    result = await run_subprocess(["ls"], cwd=tmp_path)

    assert result.success
    assert "lcov.info" in result.stdout


async def test_run_subprocess_captures_stderr() -> None:
    result = await run_subprocess(
        [sys.executable, "-c", "import sys; sys.stderr.write('error msg')"]
    )

    assert result.returncode == 0
    assert "error msg" in result.stderr


async def test_run_subprocess_nonzero_exit_code() -> None:
    result = await run_subprocess([sys.executable, "-c", "import sys; sys.exit(42)"])

    assert not result.success
    assert result.returncode == 42


# ── Error Handling Tests ──────────────────────────────────────────────


async def test_run_subprocess_command_not_found() -> None:
    with pytest.raises(SubprocessError) as exc_info:
        await run_subprocess(["nonexistent_genhtml_xyz123"])

    assert "Command not found" in str(exc_info.value)
    assert exc_info.value.result.returncode == -1


async def test_run_subprocess_empty_command() -> None:
    with pytest.raises(ValueError, match="Command cannot be empty"):
        await run_subprocess([])


async def test_run_subprocess_invalid_timeout() -> None:
    with pytest.raises(ValueError, match="Timeout must be positive"):
        await run_subprocess(["echo", "test"], timeout=0)


async def test_run_subprocess_invalid_working_directory() -> None:
    with pytest.raises(ValueError, match="Working directory does not exist"):
        await run_subprocess(["echo", "test"], cwd=Path("/nonexistent/path/xyz"))


# ── Timeout Tests ─────────────────────────────────────────────────────


async def test_run_subprocess_timeout() -> None:
    result = await run_subprocess(
        [sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.1
    )

    assert not result.success
    assert result.timed_out is True
    assert result.returncode != 0
    assert "timed out" in result.stderr.lower()


async def test_run_subprocess_without_timeout_waits() -> None:
    result = await run_subprocess([sys.executable, "-c", "import time; time.sleep(0.05)"])

    assert result.success
    assert result.duration_ms >= 50


# ── Check Parameter Tests ─────────────────────────────────────────────


async def test_run_subprocess_check_raises_on_failure() -> None:
    with pytest.raises(SubprocessError) as exc_info:
        await run_subprocess([sys.executable, "-c", "import sys; sys.exit(1)"], check=True)

    assert "Command failed" in str(exc_info.value)
    assert exc_info.value.result.returncode == 1


# ── Environment Variables Tests ────────────────────────────────────────


async def test_run_subprocess_merges_environment() -> None:
    result = await run_subprocess(
        [
            sys.executable,
            "-c",
            "import os; print(os.getenv('LINECOV_VAR'), bool(os.getenv('PATH')))",
        ],
        env={"LINECOV_VAR": "test_value"},
    )

    assert result.success
    assert "test_value True" in result.stdout


async def test_run_subprocess_concurrent_execution() -> None:
    results = await asyncio.gather(*(run_subprocess(["echo", f"test{i}"]) for i in range(5)))

    assert all(r.success for r in results)
    assert [r.stdout.strip() for r in results] == [f"test{i}" for i in range(5)]
