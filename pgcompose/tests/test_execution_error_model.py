from pgcompose.execution.errors import (
    ConnectionTimeoutError,
    DeadlockError,
    ExecutionError,
    IntegrityConstraintError,
    LockTimeoutError,
    ProgrammingExecutionError,
    SerializationError,
    TransientExecutionError,
    extract_sqlstate,
    normalize_execution_error,
)


class _FakeDriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def test_normalize_deadlock_by_sqlstate() -> None:
    err = normalize_execution_error(
        operation="execute",
        exc=_FakeDriverError("deadlock detected", "40P01"),
        statement_kind="update",
    )
    assert isinstance(err, DeadlockError)
    assert isinstance(err, TransientExecutionError)
    assert err.details.operation == "execute"
    assert err.details.statement_kind == "update"
    assert str(err) == "[postgres:execute:update] DeadlockError: deadlock detected (SQLSTATE 40P01)"


def test_normalize_serialization_by_sqlstate() -> None:
    err = normalize_execution_error(
        operation="transaction",
        exc=_FakeDriverError("could not serialize access due to concurrent update", "40001"),
    )
    assert isinstance(err, SerializationError)


def test_normalize_lock_not_available_by_sqlstate() -> None:
    err = normalize_execution_error(
        operation="execute",
        exc=_FakeDriverError('could not obtain lock on row in relation "users"', "55P03"),
    )
    assert isinstance(err, LockTimeoutError)
    assert not isinstance(err, TransientExecutionError)


def test_normalize_lock_timeout_by_message() -> None:
    err = normalize_execution_error(
        operation="execute",
        exc=_FakeDriverError("canceling statement due to lock timeout"),
    )
    assert isinstance(err, LockTimeoutError)


def test_normalize_connection_error_by_sqlstate_class() -> None:
    err = normalize_execution_error(
        operation="execute",
        exc=_FakeDriverError("server closed the connection unexpectedly", "08006"),
    )
    assert isinstance(err, ConnectionTimeoutError)


def test_normalize_integrity_error_by_sqlstate_class() -> None:
    err = normalize_execution_error(
        operation="execute",
        exc=_FakeDriverError("duplicate key value violates unique constraint", "23505"),
    )
    assert isinstance(err, IntegrityConstraintError)


def test_normalize_programming_error_by_sqlstate_class() -> None:
    err = normalize_execution_error(
        operation="execute",
        exc=_FakeDriverError('relation "nope" does not exist', "42P01"),
    )
    assert isinstance(err, ProgrammingExecutionError)


def test_normalize_generic_execution_error_fallback() -> None:
    err = normalize_execution_error(
        operation="execute",
        exc=_FakeDriverError("unknown failure"),
    )
    assert type(err) is ExecutionError
    assert err.details.sqlstate is None
    assert str(err) == "[postgres:execute] ExecutionError: unknown failure"


def test_normalize_returns_already_normalized_errors() -> None:
    err = normalize_execution_error(operation="execute", exc=_FakeDriverError("x", "40001"))
    assert normalize_execution_error(operation="run", exc=err) is err


def test_extract_sqlstate_reads_pgcode() -> None:
    exc = Exception("legacy driver")
    exc.pgcode = "40p01"  # type: ignore[attr-defined]
    assert extract_sqlstate(exc) == "40P01"
    assert extract_sqlstate(Exception("plain")) is None
