"""Run test steps in order and collect their results."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from webtester.step_runner.assertions import (
    evaluate_api_assertions,
    evaluate_database_assertions,
)
from webtester.step_runner.exceptions import (
    DatabaseError,
    ExtractionError,
    StepConfigurationError,
    StepExecutionError,
)
from webtester.step_runner.executors.query_executor import QueryExecutor
from webtester.step_runner.executors.request_executor import RequestExecutor
from webtester.step_runner.extractor import extract_json
from webtester.step_runner.models.test_configuration import (
    ApiRequest,
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
from webtester.step_runner.variables import TOKEN_TYPE_KEY, VariableStore

logger = logging.getLogger(__name__)


def extract_auth_token(
    auth: AuthenticationDetails, document: Any, store: VariableStore
) -> bool:
    """Store a token read from an authentication response.

    The token type is recorded only if none is stored yet.

    Returns:
        True if a token was found and stored

    """
    try:
        token = extract_json(document, auth.token_path)
    except ExtractionError as e:
        logger.warning(f"Could not extract token using path '{auth.token_path}': {e}")
        return False

    if token is None:
        logger.warning(f"Could not extract token using path '{auth.token_path}'")
        return False

    store.set(auth.variable_name, token)
    if auth.token_type and TOKEN_TYPE_KEY not in store:
        store.set(TOKEN_TYPE_KEY, auth.token_type)

    logger.info(f"Extracted {auth.variable_name}: {token[:10]}...")
    return True


@dataclass
class _StepOutcome:
    success: bool
    status_code: int | None = None
    error_message: str | None = None
    assertion_results: list[AssertionResult] = field(default_factory=list)
    json_response: Any = None


class StepRunner:
    """Executes a single step and never lets its failure escape."""

    def __init__(
        self,
        request_executor: RequestExecutor | None = None,
        query_executor: QueryExecutor | None = None,
    ) -> None:
        """Initialize step runner with its executors."""
        self.request_executor = request_executor or RequestExecutor()
        self.query_executor = query_executor or QueryExecutor()

    async def run_step(
        self, step: TestStep, config: TestConfiguration, store: VariableStore
    ) -> StepResult:
        """Run one step and return its completed result."""
        logger.info(f"Running step: {step.name}")
        if step.description:
            logger.info(f"Description: {step.description}")

        start_time = datetime.now(timezone.utc)
        started = time.perf_counter()

        try:
            action = step.action()
            logger.debug(f"Step '{step.name}': dispatched")
            if isinstance(action, ApiRequest):
                outcome = await self._run_api_step(step, action, config, store)
            else:
                outcome = await self._run_database_step(step, action, config, store)
            logger.debug(f"Step '{step.name}': assertions evaluated")
        except StepConfigurationError as e:
            outcome = _StepOutcome(success=False, error_message=str(e))
        except DatabaseError as e:
            outcome = _StepOutcome(success=False, error_message=f"Database error: {e}")
        except StepExecutionError as e:
            outcome = _StepOutcome(
                success=False, error_message=f"Error executing step: {e}"
            )
        except Exception as e:
            logger.exception(f"Unexpected error in step '{step.name}'")
            outcome = _StepOutcome(
                success=False,
                error_message=f"Error executing step: {type(e).__name__}: {e}",
            )

        duration_ms = (time.perf_counter() - started) * 1000
        result = StepResult(
            step_name=step.name,
            description=step.description,
            success=outcome.success,
            status_code=outcome.status_code,
            error_message=outcome.error_message,
            start_time=start_time,
            end_time=datetime.now(timezone.utc),
            duration_ms=duration_ms,
            assertion_results=outcome.assertion_results,
            json_response=outcome.json_response,
        )
        self._log_result(result)
        return result

    async def _run_api_step(
        self,
        step: TestStep,
        request: ApiRequest,
        config: TestConfiguration,
        store: VariableStore,
    ) -> _StepOutcome:
        response = await self.request_executor.execute(config.base_url, request, store)

        if request.assertions and response.json_body is not None:
            assertion_results = evaluate_api_assertions(
                request.assertions, response.json_body
            )
            success = all(r.success for r in assertion_results)
        else:
            if request.assertions:
                logger.warning(
                    f"Step '{step.name}': response is not JSON, "
                    "assertions skipped and status code used"
                )
            assertion_results = []
            success = response.is_success

        if step.authentication and success and response.json_body is not None:
            extract_auth_token(step.authentication, response.json_body, store)

        return _StepOutcome(
            success=success,
            status_code=response.status_code,
            assertion_results=assertion_results,
            json_response=response.json_body,
        )

    async def _run_database_step(
        self,
        step: TestStep,
        action: DatabaseAction,
        config: TestConfiguration,
        store: VariableStore,
    ) -> _StepOutcome:
        if step.authentication:
            logger.warning(
                f"Step '{step.name}': authentication is ignored for database steps"
            )

        result = await self.query_executor.execute(
            config.connection_string, action, store
        )

        if not action.assertions:
            return _StepOutcome(success=True)

        assertion_results = evaluate_database_assertions(action.assertions, result)
        return _StepOutcome(
            success=all(r.success for r in assertion_results),
            assertion_results=assertion_results,
        )

    def _log_result(self, result: StepResult) -> None:
        if result.success:
            logger.info(f"Step result: PASSED ({result.duration_ms:.0f}ms)")
        else:
            logger.error(f"Step result: FAILED ({result.duration_ms:.0f}ms)")
            if result.error_message:
                logger.error(f"Error: {result.error_message}")

        for assertion in result.assertion_results:
            status = "PASSED" if assertion.success else "FAILED"
            logger.info(
                f"  - {assertion.assertion_type}: {status} - {assertion.message}"
            )


class TestRunner:
    """Runs the steps of a configuration sequentially."""

    __test__ = False

    def __init__(self, step_runner: StepRunner | None = None) -> None:
        """Initialize runner with a step runner."""
        self.step_runner = step_runner or StepRunner()

    async def run(
        self, config: TestConfiguration, config_name: str = ""
    ) -> TestRunResult:
        """Run every step in declared order and summarize the run.

        Each run gets its own variable store, so later steps see the
        variables written by earlier ones and runs never share state.
        """
        store = VariableStore(config.variables)
        start_time = datetime.now(timezone.utc)
        started = time.perf_counter()

        logger.info(f"Running tests from {config_name}")
        logger.info(f"Base URL: {config.base_url}")
        logger.info(f"Total steps: {len(config.steps)}")

        step_results: list[StepResult] = []
        for step in config.steps:
            step_results.append(await self.step_runner.run_step(step, config, store))

        summary = TestRunResult.from_steps(
            config_name=config_name,
            start_time=start_time,
            end_time=datetime.now(timezone.utc),
            duration_ms=(time.perf_counter() - started) * 1000,
            step_results=step_results,
        )
        logger.info(
            f"Test run completed: {summary.passed_steps}/{summary.total_steps} "
            f"steps passed in {summary.duration_ms:.0f}ms"
        )
        logger.debug(f"Variables at end of run: {sorted(store.as_dict())}")
        return summary
