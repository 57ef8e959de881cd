"""Load and parse test configurations from YAML files."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from webtester.step_runner.models.test_configuration import TestConfiguration


def load_configuration(config_path: Path) -> TestConfiguration:
    """Load a test configuration.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Parsed test configuration

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If YAML is invalid or doesn't match schema

    """
    if not config_path.is_file():
        raise FileNotFoundError(f"YAML configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty configuration file: {config_path}")

    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {config_path} must be a mapping")

    try:
        return TestConfiguration.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration schema in {config_path}: {e}") from e
