from abc import ABC, abstractmethod
from datetime import datetime, timezone
import time
from typing import Any, Callable
from uuid import uuid4

from pgcompose.compiler.compiled_query import CompiledQuery
from pgcompose.execution.errors import ExecutionError, normalize_execution_error
from pgcompose.execution.observability import ExecutionEvent, ObservabilitySettings, QueryObservation
from pgcompose.results.transform import QueryResult

ISOLATION_LEVELS = (
    "SERIALIZABLE",
    "REPEATABLE READ",
    "READ COMMITTED",
    "SERIALIZABLE, READ ONLY",
    "REPEATABLE READ, READ ONLY",
    "SERIALIZABLE, READ ONLY, DEFERRABLE",
)

# ==================================================
# Executor Interface
# ==================================================

class Executor(ABC):
    """
    Sends compiled statements to PostgreSQL. run() and transaction() only need
    execute/begin/commit/rollback; the rest are shared helpers.
    """

    observability_settings: ObservabilitySettings | None = None

    @abstractmethod
    def execute(self, compiled_query: CompiledQuery, statement_kind: str | None = None) -> QueryResult:
        """
        Runs one statement and returns its rows as mappings ({"result": ...}).
        """

    @abstractmethod
    def begin(self, isolation_level: str | None = None) -> None:
        """
        Opens a transaction; statements run on its connection until commit or rollback.
        """

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    def is_driver_error(self, exc: Exception) -> bool:
        """
        True for exceptions raised by the database driver. Only these are normalized and retried.
        """
        if isinstance(exc, ExecutionError):
            return True
        return getattr(exc, "sqlstate", None) is not None

    def _has_active_transaction(self) -> bool:
        return False

    def _normalize_execution_error(
        self,
        *,
        operation: str,
        exc: Exception,
        statement_kind: str | None = None,
    ) -> ExecutionError | None:
        if self.is_driver_error(exc):
            return normalize_execution_error(operation=operation, exc=exc, statement_kind=statement_kind)
        return None

    # ==================================================
    # Observability
    # ==================================================

    def _metadata(self) -> dict[str, Any]:
        settings = self.observability_settings
        return dict(settings.metadata) if settings is not None else {}

    def _emit_event(self, event: str, *, success: bool, **fields: Any) -> None:
        settings = self.observability_settings
        if settings is None or settings.event_observer is None:
            return
        settings.event_observer(
            ExecutionEvent(
                timestamp=datetime.now(timezone.utc).isoformat(),
                event=event,
                executor=type(self).__name__,
                success=success,
                metadata=self._metadata(),
                **fields,
            )
        )

    def _observe_query(
        self,
        *,
        compiled_query: CompiledQuery,
        statement_kind: str | None,
        run: Callable[[], QueryResult],
    ) -> QueryResult:
        """
        Calls run(), reporting a QueryObservation and query.start / query.end events
        when observability is configured.
        """
        settings = self.observability_settings
        if settings is None:
            return run()

        query_id = uuid4().hex
        self._emit_event("query.start", success=True, statement_kind=statement_kind, query_id=query_id)
        started = time.perf_counter()
        try:
            result = run()
        except Exception as exc:
            self._report_query(settings, compiled_query, statement_kind, query_id, started, None, exc)
            raise
        self._report_query(settings, compiled_query, statement_kind, query_id, started, result, None)
        return result

    def _report_query(
        self,
        settings: ObservabilitySettings,
        compiled_query: CompiledQuery,
        statement_kind: str | None,
        query_id: str,
        started: float,
        result: QueryResult | None,
        error: Exception | None,
    ) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000
        error_type = type(error).__name__ if error is not None else None
        error_message = str(error) if error is not None else None

        if settings.query_observer is not None:
            settings.query_observer(
                QueryObservation(
                    statement_kind=statement_kind,
                    text=compiled_query.text,
                    value_count=len(compiled_query.values),
                    duration_ms=elapsed_ms,
                    succeeded=error is None,
                    in_transaction=self._has_active_transaction(),
                    row_count=result.row_count if result is not None else None,
                    metadata=self._metadata(),
                    error_type=error_type,
                    error_message=error_message,
                )
            )
        self._emit_event(
            "query.end",
            success=error is None,
            statement_kind=statement_kind,
            query_id=query_id,
            duration_ms=elapsed_ms,
            error_type=error_type,
            error_message=error_message,
        )

    # ==================================================
    # Lifecycle
    # ==================================================

    def close(self) -> None:
        """
        Releases whatever the executor owns. The base executor owns nothing.
        """

    def __enter__(self) -> "Executor":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
