"""Tests for .linecov.yml parsing and validation (config.py)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from linecov import config as config_module
from linecov.config import (
    CoverageConfig,
    LinecovConfig,
    _resolve_dict,
    _resolve_env_vars,
    load_config,
    validate_config,
)

if TYPE_CHECKING:
    import pytest


def _write_config(root: Path, data: dict[str, Any]) -> None:
    """Write .linecov.yml with given data."""
    (root / ".linecov.yml").write_text(yaml.dump(data), encoding="utf-8")


# ── _resolve_env_vars / _resolve_dict ─────────────────────────────────


class TestResolveEnvVars:
    def test_resolves_existing_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _resolve_env_vars("${MY_VAR}") == "hello"

    def test_missing_var_returns_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MISSING_VAR", raising=False)
        assert _resolve_env_vars("${MISSING_VAR}") == ""

    def test_nested_dict_and_lists(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COVDIR", "cov")
        data = {"coverage": {"directory": "${COVDIR}", "folders": ["${COVDIR}/src", 3]}}
        assert _resolve_dict(data) == {"coverage": {"directory": "cov", "folders": ["cov/src", 3]}}


# ── load_config ───────────────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LINECOV_TARGET", raising=False)
        monkeypatch.delenv("LINECOV_COVERAGE_DIR", raising=False)
        config = load_config(tmp_path)

        assert config.root == str(tmp_path.resolve())
        assert config.coverage == CoverageConfig()
        assert config.testing == config_module.TestingConfig()
        assert config.tracefile_path == tmp_path.resolve() / "coverage" / "lcov.info"
        assert config.xml_path == tmp_path.resolve() / "coverage" / "cobertura.xml"

    def test_reads_sections(self, tmp_path: Path) -> None:
        _write_config(
            tmp_path,
            {
                "coverage": {
                    "directory": "out",
                    "tracefile": "trace.info",
                    "target": 92.5,
                    "show_gaps": True,
                    "folders": ["src", "ext"],
                    "source_suffixes": ".py",
                    "clean": False,
                },
                "testing": {"command": "make coverage", "timeout": 30},
                "report": {"genhtml": "/opt/lcov/genhtml", "xml_filename": "cov.xml"},
            },
        )
        config = load_config(tmp_path)

        assert config.coverage.directory == "out"
        assert config.coverage.target == 92.5
        assert config.coverage.show_gaps is True
        assert config.coverage.folders == ["src", "ext"]
        assert config.coverage.source_suffixes == [".py"]
        assert config.coverage.clean is False
        assert config.testing.command == ["make", "coverage"]
        assert config.testing.timeout == 30.0
        assert config.report.genhtml == "/opt/lcov/genhtml"
        assert config.xml_path == tmp_path.resolve() / "out" / "cov.xml"
        assert config.tracefile_path.name == "trace.info"

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINECOV_TARGET", "65")
        monkeypatch.setenv("LINECOV_COVERAGE_DIR", "cov-out")
        config = load_config(tmp_path)
        assert config.coverage.target == 65.0
        assert config.coverage.directory == "cov-out"

    def test_file_wins_over_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINECOV_TARGET", "65")
        _write_config(tmp_path, {"coverage": {"target": 70}})
        assert load_config(tmp_path).coverage.target == 70.0

    def test_quoted_flags(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINECOV_CLEAN", "false")
        _write_config(
            tmp_path,
            {"coverage": {"show_gaps": "false", "clean": "${LINECOV_CLEAN}"}},
        )
        config = load_config(tmp_path)
        assert config.coverage.show_gaps is False
        assert config.coverage.clean is False

    def test_string_true_flag(self, tmp_path: Path) -> None:
        _write_config(tmp_path, {"coverage": {"show_gaps": "Yes", "clean": True}})
        config = load_config(tmp_path)
        assert config.coverage.show_gaps is True
        assert config.coverage.clean is True

    def test_non_mapping_file_is_ignored(self, tmp_path: Path) -> None:
        (tmp_path / ".linecov.yml").write_text("- just\n- a list\n", encoding="utf-8")
        config = load_config(tmp_path)
        assert config.raw == {}
        assert config.report.xml_filename == "cobertura.xml"

    def test_invalid_section_types_use_defaults(self, tmp_path: Path) -> None:
        _write_config(tmp_path, {"coverage": "nope", "testing": ["x"]})
        config = load_config(tmp_path)
        assert config.coverage.folders == ["src"]
        assert config.testing.command == config_module.TestingConfig().command


# ── validate_config ───────────────────────────────────────────────────


class TestValidateConfig:
    def test_defaults_are_valid(self, tmp_path: Path) -> None:
        assert validate_config(LinecovConfig(root=str(tmp_path))) == []

    def test_reports_every_error(self, tmp_path: Path) -> None:
        config = LinecovConfig(
            root=str(tmp_path),
            coverage=CoverageConfig(target=120, directory="", tracefile="", folders=[]),
            testing=config_module.TestingConfig(timeout=-1),
        )
        errors = validate_config(config)
        assert len(errors) == 5
        assert any("coverage.target" in e for e in errors)
        assert any("testing.timeout" in e for e in errors)
