"""Evaluate assertions against extracted values."""

import logging
import math
from collections.abc import Callable, Sequence
from typing import Any

from webtester.step_runner.exceptions import ExtractionError
from webtester.step_runner.extractor import QueryResult, extract_column, extract_json
from webtester.step_runner.models.test_configuration import Assertion
from webtester.step_runner.models.test_result import AssertionResult

logger = logging.getLogger(__name__)

PASSED_MESSAGE = "Assertion passed"
NOT_NUMERIC_MESSAGE = "Values could not be converted to numbers for comparison"

# A comparison returns None when the values cannot be compared at all.
Comparison = Callable[[str | None, str], bool | None]


def _parse_number(value: str | None) -> float | None:
    if value is None:
        return None
    if "_" in value:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _numeric(op: Callable[[float, float], bool]) -> Comparison:
    def compare(actual: str | None, expected: str) -> bool | None:
        actual_num = _parse_number(actual)
        expected_num = _parse_number(expected)
        if actual_num is None or expected_num is None:
            return None
        return op(actual_num, expected_num)

    return compare


def _greater(a: float, b: float) -> bool:
    return a > b


def _less(a: float, b: float) -> bool:
    return a < b


_COMPARISONS: dict[str, Comparison] = {
    "equals": lambda actual, expected: actual == expected,
    "notequals": lambda actual, expected: actual != expected,
    "contains": lambda actual, expected: actual is not None and expected in actual,
    "notcontains": lambda actual, expected: actual is None or expected not in actual,
    "startswith": lambda actual, expected: (
        actual is not None and actual.startswith(expected)
    ),
    "endswith": lambda actual, expected: (
        actual is not None and actual.endswith(expected)
    ),
    "greater": _numeric(_greater),
    "greaterthan": _numeric(_greater),
    "less": _numeric(_less),
    "lessthan": _numeric(_less),
    "notempty": lambda actual, expected: bool(actual),
    "empty": lambda actual, expected: not actual,
}

# Types that can succeed when the value was not found.
_ABSENCE_TYPES = frozenset({"notcontains", "empty"})


def _not_found_message(property_path: str | None, column: str | None) -> str:
    if column is not None:
        return f"Column '{column}' value not found"
    return f"Property path '{property_path or '$'}' not found in response"


def evaluate(
    assertion_type: str,
    actual: str | None,
    expected: str | None,
    *,
    property_path: str | None = None,
    column: str | None = None,
) -> AssertionResult:
    """Compare an actual value against an expected value.

    Args:
        assertion_type: Comparison type, case-insensitive
        actual: Extracted value as text, None when it was not found
        expected: Expected value as text
        property_path: Locator reported for API assertions
        column: Locator reported for database assertions

    Returns:
        Assertion result; failures never raise

    """
    expected_text = expected or ""
    key = assertion_type.strip().lower()
    comparison = _COMPARISONS.get(key)

    def result(success: bool, message: str) -> AssertionResult:
        return AssertionResult(
            assertion_type=assertion_type,
            property_path=property_path,
            column=column,
            expected_value=expected,
            actual_value=actual,
            success=success,
            message=message,
        )

    if comparison is None:
        return result(False, f"Unknown assertion type: {assertion_type}")

    if actual is None and key not in _ABSENCE_TYPES:
        return result(False, _not_found_message(property_path, column))

    success = comparison(actual, expected_text)
    if success is None:
        return result(False, NOT_NUMERIC_MESSAGE)
    if success:
        return result(True, PASSED_MESSAGE)
    return result(
        False, f"Assertion failed. Expected: {expected_text}, Actual: {actual}"
    )


def _extraction_failure(
    assertion: Assertion,
    error: ExtractionError,
    *,
    property_path: str | None = None,
    column: str | None = None,
) -> AssertionResult:
    return AssertionResult(
        assertion_type=assertion.type,
        property_path=property_path,
        column=column,
        expected_value=assertion.expected_text,
        success=False,
        message=str(error),
    )


def evaluate_api_assertions(
    assertions: Sequence[Assertion], document: Any
) -> list[AssertionResult]:
    """Evaluate assertions against a parsed API response, in order."""
    results: list[AssertionResult] = []
    for assertion in assertions:
        try:
            actual = extract_json(document, assertion.property_path)
        except ExtractionError as e:
            results.append(
                _extraction_failure(
                    assertion, e, property_path=assertion.property_path
                )
            )
            continue

        results.append(
            evaluate(
                assertion.type,
                actual,
                assertion.expected_text,
                property_path=assertion.property_path,
            )
        )
    return results


def evaluate_database_assertions(
    assertions: Sequence[Assertion], result: QueryResult
) -> list[AssertionResult]:
    """Evaluate assertions against a query result, in order."""
    results: list[AssertionResult] = []
    for assertion in assertions:
        try:
            actual = extract_column(result, assertion.column)
        except ExtractionError as e:
            logger.debug(f"Column extraction failed: {e}")
            results.append(_extraction_failure(assertion, e, column=assertion.column))
            continue

        results.append(
            evaluate(
                assertion.type,
                actual,
                assertion.expected_text,
                column=assertion.column,
            )
        )
    return results
