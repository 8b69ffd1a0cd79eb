from pgcompose.execution.base import ISOLATION_LEVELS, Executor
from pgcompose.execution.postgres import PostgresExecutor
from pgcompose.execution.retry import RetryPolicy
from pgcompose.execution.run import run, transaction
from pgcompose.execution.observability import (
    ExecutionEvent,
    ObservabilitySettings,
    QueryObservation,
    compose_event_observers,
    execution_event_to_dict,
    make_json_event_logger,
    make_query_logger,
)
from pgcompose.execution.errors import (
    ExecutionError,
    TransientExecutionError,
    DeadlockError,
    SerializationError,
    LockTimeoutError,
    ConnectionTimeoutError,
    IntegrityConstraintError,
    ProgrammingExecutionError,
    normalize_execution_error,
)

__all__ = [
    "Executor",
    "PostgresExecutor",
    "ISOLATION_LEVELS",
    "RetryPolicy",
    "run",
    "transaction",
    "ObservabilitySettings",
    "QueryObservation",
    "ExecutionEvent",
    "compose_event_observers",
    "execution_event_to_dict",
    "make_json_event_logger",
    "make_query_logger",
    "ExecutionError",
    "TransientExecutionError",
    "DeadlockError",
    "SerializationError",
    "LockTimeoutError",
    "ConnectionTimeoutError",
    "IntegrityConstraintError",
    "ProgrammingExecutionError",
    "normalize_execution_error",
]
