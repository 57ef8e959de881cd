"""Errors raised while executing test steps."""


class StepRunnerError(Exception):
    """Base class for step runner errors."""


class StepConfigurationError(StepRunnerError):
    """Step is misconfigured (neither or both actions populated)."""


class StepExecutionError(StepRunnerError):
    """Dispatching a step to its target failed."""


class TransportError(StepExecutionError):
    """HTTP request could not be completed."""


class DatabaseError(StepExecutionError):
    """Database query could not be completed."""


class ExtractionError(StepRunnerError):
    """A value could not be extracted from a step result."""


class InvalidPathError(ExtractionError):
    """Path expression could not be parsed."""


class ColumnNotFoundError(ExtractionError):
    """Column is not part of the query result."""


class NoRowsError(ExtractionError):
    """Query result has no rows to read a column from."""
