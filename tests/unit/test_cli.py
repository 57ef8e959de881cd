"""Tests for CLI entry point."""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from webtester.step_runner.cli import app, apply_overrides
from webtester.step_runner.models.test_configuration import TestConfiguration
from webtester.step_runner.models.test_result import StepResult, TestRunResult

runner = CliRunner()

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)

CONFIG_YAML = """
baseUrl: https://api.example.com
connectionString: sqlite+aiosqlite:///test.db
steps:
  - name: health
    apiRequest:
      endpoint: /health
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a minimal configuration file."""
    path = tmp_path / "suite.yaml"
    path.write_text(CONFIG_YAML)
    return path


def _summary(*successes: bool) -> TestRunResult:
    steps = [
        StepResult(
            step_name=f"step{i}",
            success=success,
            error_message=None if success else "Error executing step: boom",
            start_time=NOW,
            end_time=NOW,
            duration_ms=1.0,
        )
        for i, success in enumerate(successes)
    ]
    return TestRunResult.from_steps("suite.yaml", NOW, NOW, 2.0, steps)


def _mock_runner(summary: TestRunResult) -> AsyncMock:
    mock_runner = AsyncMock()
    mock_runner.run = AsyncMock(return_value=summary)
    return mock_runner


def test_main_success(config_file: Path) -> None:
    """Main outputs the report and exits successfully when all steps pass."""
    mock_runner = _mock_runner(_summary(True, True))

    with patch("webtester.step_runner.cli.TestRunner", return_value=mock_runner):
        result = runner.invoke(app, [str(config_file)])

    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output["configName"] == "suite.yaml"
    assert output["totalSteps"] == 2
    assert output["passedSteps"] == 2
    assert output["failedSteps"] == 0
    config, name = mock_runner.run.call_args.args
    assert config.base_url == "https://api.example.com"
    assert name == "suite.yaml"


def test_main_failure_with_failed_steps(config_file: Path) -> None:
    """Main exits with error code when a step fails."""
    mock_runner = _mock_runner(_summary(True, False))

    with patch("webtester.step_runner.cli.TestRunner", return_value=mock_runner):
        result = runner.invoke(app, [str(config_file)])

    assert result.exit_code == 1
    output = json.loads(result.stdout)
    assert output["failedSteps"] == 1
    assert output["stepResults"][1]["errorMessage"] == "Error executing step: boom"


def test_main_writes_report_file(config_file: Path, tmp_path: Path) -> None:
    """--output writes the JSON report to a file."""
    report = tmp_path / "report.json"
    mock_runner = _mock_runner(_summary(True))

    with patch("webtester.step_runner.cli.TestRunner", return_value=mock_runner):
        result = runner.invoke(app, [str(config_file), "--output", str(report)])

    assert result.exit_code == 0
    assert json.loads(report.read_text())["totalSteps"] == 1


def test_main_applies_cli_overrides(config_file: Path) -> None:
    """--base-url and --connection-string override the configuration."""
    mock_runner = _mock_runner(_summary(True))

    with patch("webtester.step_runner.cli.TestRunner", return_value=mock_runner):
        result = runner.invoke(
            app,
            [
                str(config_file),
                "--base-url",
                "http://localhost:8080",
                "--connection-string",
                "sqlite+aiosqlite:///other.db",
            ],
        )

    assert result.exit_code == 0
    config = mock_runner.run.call_args.args[0]
    assert config.base_url == "http://localhost:8080"
    assert config.connection_string == "sqlite+aiosqlite:///other.db"


def test_main_missing_config_file(tmp_path: Path) -> None:
    """Main exits with error code when the configuration is missing."""
    result = runner.invoke(app, [str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "configuration file not found" in result.output


def test_main_invalid_config_file(tmp_path: Path) -> None:
    """Main exits with error code when the configuration is invalid."""
    path = tmp_path / "bad.yaml"
    path.write_text("steps: [unclosed")

    result = runner.invoke(app, [str(path)])

    assert result.exit_code == 1
    assert "Invalid YAML" in result.output


def test_apply_overrides_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables override the file; CLI options override both."""
    monkeypatch.setenv("WEBTESTER_BASE_URL", "http://env:1")
    monkeypatch.setenv("WEBTESTER_CONNECTION_STRING", "sqlite+aiosqlite:///env.db")
    config = TestConfiguration(base_url="http://file", connection_string="file")

    updated = apply_overrides(config, base_url="http://cli:2")

    assert updated.base_url == "http://cli:2"
    assert updated.connection_string == "sqlite+aiosqlite:///env.db"
    assert config.base_url == "http://file"


def test_apply_overrides_without_changes(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without overrides the configuration is returned as is."""
    monkeypatch.delenv("WEBTESTER_BASE_URL", raising=False)
    monkeypatch.delenv("WEBTESTER_CONNECTION_STRING", raising=False)
    config = TestConfiguration(base_url="http://file")

    assert apply_overrides(config) is config
