from __future__ import annotations

from dataclasses import dataclass


# ==================================================
# Normalized Execution Errors
# ==================================================


@dataclass(slots=True)
class ExecutionErrorDetails:
    """
    Structured metadata for normalized driver errors.
    """

    operation: str
    sqlstate: str | None
    original_message: str
    statement_kind: str | None = None


class ExecutionError(Exception):
    """
    Base normalized execution error type. Wraps the driver exception it was built from.
    """

    def __init__(self, details: ExecutionErrorDetails, original_exception: Exception) -> None:
        self.details = details
        self.original_exception = original_exception
        kind = f":{details.statement_kind}" if details.statement_kind else ""
        state = f" (SQLSTATE {details.sqlstate})" if details.sqlstate else ""
        super().__init__(
            f"[postgres:{details.operation}{kind}] {self.__class__.__name__}: {details.original_message}{state}"
        )


class TransientExecutionError(ExecutionError):
    """
    Base type for errors a transaction can be retried after.
    """


class DeadlockError(TransientExecutionError):
    pass


class SerializationError(TransientExecutionError):
    pass


class LockTimeoutError(ExecutionError):
    pass


class ConnectionTimeoutError(ExecutionError):
    pass


class IntegrityConstraintError(ExecutionError):
    pass


class ProgrammingExecutionError(ExecutionError):
    pass


_SQLSTATE_CLASSES: dict[str, type[ExecutionError]] = {
    "40P01": DeadlockError,
    "40001": SerializationError,
    "55P03": LockTimeoutError,  # lock_not_available (NOWAIT)
    "57014": LockTimeoutError,  # query_canceled (lock_timeout / statement_timeout)
}

_SQLSTATE_PREFIXES: dict[str, type[ExecutionError]] = {
    "08": ConnectionTimeoutError,  # connection exception
    "23": IntegrityConstraintError,
    "42": ProgrammingExecutionError,
}


def extract_sqlstate(exc: Exception) -> str | None:
    sqlstate = getattr(exc, "sqlstate", None)
    if isinstance(sqlstate, str) and sqlstate:
        return sqlstate.upper()

    pgcode = getattr(exc, "pgcode", None)
    if isinstance(pgcode, str) and pgcode:
        return pgcode.upper()

    return None


def normalize_execution_error(
    *,
    operation: str,
    exc: Exception,
    statement_kind: str | None = None,
) -> ExecutionError:
    """
    Maps a PostgreSQL driver exception onto the normalized taxonomy, by SQLSTATE first and
    message text second.
    """
    if isinstance(exc, ExecutionError):
        return exc

    sqlstate = extract_sqlstate(exc)
    message = str(exc).lower()
    details = ExecutionErrorDetails(
        operation=operation,
        sqlstate=sqlstate,
        original_message=str(exc),
        statement_kind=statement_kind,
    )

    if sqlstate is not None:
        error_type = _SQLSTATE_CLASSES.get(sqlstate) or _SQLSTATE_PREFIXES.get(sqlstate[:2])
        if error_type is not None:
            return error_type(details, exc)

    if "deadlock" in message:
        return DeadlockError(details, exc)
    if "could not serialize" in message:
        return SerializationError(details, exc)
    if "lock timeout" in message or "could not obtain lock" in message:
        return LockTimeoutError(details, exc)
    if "timed out" in message or "could not connect" in message or "connection refused" in message:
        return ConnectionTimeoutError(details, exc)
    if "duplicate key" in message or "violates" in message:
        return IntegrityConstraintError(details, exc)
    if "syntax error" in message:
        return ProgrammingExecutionError(details, exc)

    return ExecutionError(details, exc)
