"""Build and execute the parameterized query of a database step."""

import logging

from pydantic import JsonValue
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from webtester.step_runner.exceptions import DatabaseError
from webtester.step_runner.extractor import QueryResult
from webtester.step_runner.models.test_configuration import DatabaseAction
from webtester.step_runner.variables import VariableStore, substitute_parameter

logger = logging.getLogger(__name__)


def normalize_parameter_name(name: str) -> str:
    """Strip a leading @ or : from a parameter name."""
    return name.strip().lstrip("@:")


def build_parameters(
    action: DatabaseAction, store: VariableStore
) -> dict[str, JsonValue]:
    """Substitute parameter values; empty strings are bound as NULL."""
    params: dict[str, JsonValue] = {}
    for name, value in action.parameters.items():
        value = substitute_parameter(value, store)
        params[normalize_parameter_name(name)] = None if value == "" else value
    return params


class QueryExecutor:
    """Executes database step queries with SQLAlchemy."""

    async def execute(
        self, connection_string: str, action: DatabaseAction, store: VariableStore
    ) -> QueryResult:
        """Run the query of a database step and collect its rows.

        The query text is passed through unmodified; only parameter values
        are substituted. A fresh engine is created and disposed per call.

        Raises:
            DatabaseError: If connecting or executing the query fails

        """
        params = build_parameters(action, store)
        logger.info(f"Database Query: {action.query}")

        try:
            engine = create_async_engine(connection_string)
        except (SQLAlchemyError, ValueError) as e:
            raise DatabaseError(f"Invalid connection string: {e}") from e

        try:
            async with engine.connect() as conn:
                result = await conn.execute(text(action.query), params)
                if result.returns_rows:
                    columns = list(result.keys())
                    rows = [tuple(row) for row in result.fetchall()]
                    query_result = QueryResult(columns=columns, rows=rows)
                else:
                    query_result = QueryResult(affected_rows=max(result.rowcount, 0))
                await conn.commit()
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseError(str(e)) from e
        finally:
            await engine.dispose()

        if query_result.columns:
            logger.info(f"Database Results: {query_result.row_count} rows returned")
        else:
            logger.info(f"Database Results: {query_result.affected_rows} rows affected")
        return query_result
