"""SQL segment for statements executed through SQLAlchemy."""

from collections.abc import Mapping
from typing import Any

from sqlalchemy.engine import Engine, Result

from txaudit.segments.base import TimedSegment


class SQLSegment(TimedSegment):
    """Segment for one SQL statement.

    Records the statement text, bound parameters and driver name. Results
    are only inspected, never consumed or closed; that stays the caller's job.
    """

    kind = "sql"

    def __init__(
        self,
        driver: str,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(
            {
                "statement": statement,
                "params": dict(params or {}),
                "driver": driver,
            }
        )

    @classmethod
    def for_engine(
        cls,
        engine: Engine,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> "SQLSegment":
        """Create a segment using the engine's dialect name as driver."""
        return cls(engine.dialect.name, statement, params)

    def exec_response(self, result: Result[Any]) -> None:
        """Record rows affected by a DML statement.

        Skipped when the driver does not report a row count.
        """
        rowcount = getattr(result, "rowcount", -1)
        if rowcount is not None and rowcount >= 0:
            self.update(rows_affected=rowcount)

    def query_response(self, result: Result[Any]) -> None:
        """Record the column names of a result set."""
        self.update(columns=list(result.keys()))
