"""Data models for test configurations and results."""

from webtester.step_runner.models.test_configuration import (
    ApiRequest,
    Assertion,
    AuthenticationDetails,
    DatabaseAction,
    TestConfiguration,
    TestStep,
)
from webtester.step_runner.models.test_result import (
    AssertionResult,
    StepResult,
    TestRunResult,
)

__all__ = [
    "ApiRequest",
    "Assertion",
    "AssertionResult",
    "AuthenticationDetails",
    "DatabaseAction",
    "StepResult",
    "TestConfiguration",
    "TestRunResult",
    "TestStep",
]
