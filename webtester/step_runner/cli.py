"""CLI entry point for the web tester."""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import typer

from webtester.step_runner.config_loader import load_configuration
from webtester.step_runner.executors.request_executor import RequestExecutor
from webtester.step_runner.models.test_configuration import TestConfiguration
from webtester.step_runner.runner import StepRunner, TestRunner

# Configure logging - force reconfiguration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)

BASE_URL_ENV = "WEBTESTER_BASE_URL"
CONNECTION_STRING_ENV = "WEBTESTER_CONNECTION_STRING"

app = typer.Typer()


def apply_overrides(
    config: TestConfiguration,
    base_url: str | None = None,
    connection_string: str | None = None,
) -> TestConfiguration:
    """Override targets from environment variables, then CLI options."""
    updates: dict[str, str] = {}
    if BASE_URL_ENV in os.environ:
        updates["base_url"] = os.environ[BASE_URL_ENV]
    if CONNECTION_STRING_ENV in os.environ:
        updates["connection_string"] = os.environ[CONNECTION_STRING_ENV]
    if base_url:
        updates["base_url"] = base_url
    if connection_string:
        updates["connection_string"] = connection_string
    return config.model_copy(update=updates) if updates else config


@app.command()
def main(
    config_path: Path = typer.Argument(  # noqa: B008
        ..., help="Path to the YAML test configuration"
    ),
    base_url: str | None = typer.Option(None, help="Override the base URL"),
    connection_string: str | None = typer.Option(
        None, help="Override the database connection string"
    ),
    timeout: float = typer.Option(100.0, help="HTTP request timeout in seconds"),
    output: Path | None = typer.Option(  # noqa: B008
        None, help="Write the JSON report to this file"
    ),
) -> None:
    """Run the test steps of a configuration file."""
    logger.info("=" * 80)
    logger.info("Web API Tester - Starting")
    logger.info("=" * 80)

    try:
        config = load_configuration(config_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    config = apply_overrides(config, base_url, connection_string)

    runner = TestRunner(StepRunner(request_executor=RequestExecutor(timeout=timeout)))
    result = asyncio.run(runner.run(config, config_path.name))

    logger.info("=" * 80)
    logger.info("Test Run Summary:")
    logger.info("=" * 80)
    for step in result.step_results:
        if step.success:
            logger.info(f"✓ {step.step_name} ({step.duration_ms:.0f}ms)")
        else:
            logger.error(f"✗ {step.step_name}")
            if step.error_message:
                logger.error(f"  Error: {step.error_message}")
            for assertion in step.assertion_results:
                if not assertion.success:
                    logger.error(f"  {assertion.assertion_type}: {assertion.message}")

    report = json.dumps(result.model_dump(mode="json", by_alias=True), indent=2)
    if output:
        output.write_text(report, encoding="utf-8")
        logger.info(f"Report written to {output}")
    typer.echo(report)

    if result.failed_steps:
        logger.error(f"Steps failed: {result.failed_steps}/{result.total_steps}")
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
