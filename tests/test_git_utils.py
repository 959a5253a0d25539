"""Tests for git branch detection."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from linecov.utils.git import GitOperationError, current_branch, get_current_branch


class TestGetCurrentBranch:
    @mock.patch("linecov.utils.git.subprocess.run")
    def test_success(self, mock_run: mock.Mock) -> None:
        mock_run.return_value = mock.Mock(stdout="feature-branch\n")
        assert get_current_branch(Path("/repo")) == "feature-branch"
        cmd = mock_run.call_args[0][0]
        assert cmd[1:] == ["rev-parse", "--abbrev-ref", "HEAD"]
        assert mock_run.call_args.kwargs["cwd"] == Path("/repo")

    @mock.patch("linecov.utils.git.subprocess.run")
    def test_failure(self, mock_run: mock.Mock) -> None:
        mock_run.side_effect = subprocess.CalledProcessError(128, "git")
        with pytest.raises(GitOperationError, match="Failed to detect git branch"):
            get_current_branch(Path("/repo"))

    @mock.patch("linecov.utils.git.subprocess.run")
    def test_git_missing(self, mock_run: mock.Mock) -> None:
        mock_run.side_effect = FileNotFoundError("git")
        with pytest.raises(GitOperationError):
            get_current_branch("/repo")


class TestCurrentBranch:
    @mock.patch("linecov.utils.git.subprocess.run")
    def test_returns_branch(self, mock_run: mock.Mock) -> None:
        mock_run.return_value = mock.Mock(stdout="main\n")
        assert current_branch("/repo") == "main"

    @mock.patch("linecov.utils.git.subprocess.run")
    def test_failure_returns_none_and_warns(
        self, mock_run: mock.Mock, caplog: pytest.LogCaptureFixture
    ) -> None:
        mock_run.side_effect = subprocess.CalledProcessError(128, "git")
        with caplog.at_level(logging.WARNING, logger="linecov.utils.git"):
            assert current_branch("/repo") is None
        assert "git branch could not be detected" in caplog.text
