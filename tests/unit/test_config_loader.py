"""Tests for the configuration loader."""

from pathlib import Path

import pytest

from webtester.step_runner.config_loader import load_configuration

SAMPLES = Path(__file__).parents[2] / "samples"


def test_load_configuration_valid(tmp_path: Path) -> None:
    """load_configuration loads and parses valid YAML."""
    config_file = tmp_path / "tests.yaml"
    config_file.write_text(
        """
baseUrl: https://api.example.com
connectionString: sqlite+aiosqlite:///test.db
variables:
  env: staging
steps:
  - name: Get user
    description: Retrieves a user
    apiRequest:
      method: GET
      endpoint: /api/users/1
      headers:
        Accept: application/json
      assertions:
        - type: equals
          propertyPath: $.id
          expectedValue: 1
  - name: Count users
    databaseAction:
      query: SELECT COUNT(*) AS UserCount FROM Users
      assertions:
        - type: greaterThan
          column: UserCount
          expectedValue: 5
"""
    )

    config = load_configuration(config_file)

    assert config.base_url == "https://api.example.com"
    assert config.variables == {"env": "staging"}
    assert len(config.steps) == 2
    first, second = config.steps
    assert first.api_request is not None
    assert first.api_request.headers == {"Accept": "application/json"}
    assert first.api_request.assertions[0].expected_text == "1"
    assert second.database_action is not None
    assert second.database_action.assertions[0].column == "UserCount"


def test_load_configuration_file_not_found(tmp_path: Path) -> None:
    """load_configuration raises FileNotFoundError for missing file."""
    with pytest.raises(FileNotFoundError, match="configuration file not found"):
        load_configuration(tmp_path / "missing.yaml")


def test_load_configuration_invalid_yaml(tmp_path: Path) -> None:
    """load_configuration raises ValueError for invalid YAML."""
    config_file = tmp_path / "tests.yaml"
    config_file.write_text("steps: [unclosed")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_configuration(config_file)


def test_load_configuration_empty_file(tmp_path: Path) -> None:
    """load_configuration raises ValueError for an empty file."""
    config_file = tmp_path / "tests.yaml"
    config_file.write_text("")

    with pytest.raises(ValueError, match="Empty configuration file"):
        load_configuration(config_file)


def test_load_configuration_not_a_mapping(tmp_path: Path) -> None:
    """load_configuration rejects a top-level list."""
    config_file = tmp_path / "tests.yaml"
    config_file.write_text("- one\n- two\n")

    with pytest.raises(ValueError, match="must be a mapping"):
        load_configuration(config_file)


def test_load_configuration_invalid_schema(tmp_path: Path) -> None:
    """load_configuration raises ValueError when the schema doesn't match."""
    config_file = tmp_path / "tests.yaml"
    config_file.write_text("steps:\n  - name: x\n    databaseAction: {}\n")

    with pytest.raises(ValueError, match="Invalid configuration schema"):
        load_configuration(config_file)


@pytest.mark.parametrize("name", ["sample_test.yaml", "login_test.yaml"])
def test_load_bundled_samples(name: str) -> None:
    """The bundled sample configurations are valid."""
    config = load_configuration(SAMPLES / name)
    assert config.steps
    for step in config.steps:
        step.action()
