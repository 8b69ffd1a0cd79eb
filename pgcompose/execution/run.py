from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar
from uuid import uuid4

from pgcompose.execution.base import Executor
from pgcompose.execution.errors import TransientExecutionError
from pgcompose.execution.retry import RetryPolicy, run_with_retry
from pgcompose.query import Query
from pgcompose.results.transform import QueryResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ==================================================
# Running Queries
# ==================================================


def run(query: Query, executor: Executor, *, force: bool = False) -> Any:
    """
    Compiles and executes a query, then applies its result transform.

    A no-op query (e.g. an insert of an empty list) is not sent to the database unless
    force=True; its transform is applied to an empty result instead.
    """
    if query.noop and not force:
        logger.debug("skipping no-op %s query", query.kind)
        executor._emit_event("query.noop_skipped", success=True, statement_kind=query.kind)
        return query.run_result_transform(QueryResult(rows=[], command=None, row_count=0))

    compiled = query.compile()
    try:
        result = executor.execute(compiled, statement_kind=query.kind)
    except Exception as exc:
        normalized = executor._normalize_execution_error(operation="run", exc=exc, statement_kind=query.kind)
        if normalized is None or normalized is exc:
            raise
        raise normalized from exc
    return query.run_result_transform(result)


# ==================================================
# Transactions
# ==================================================


def transaction(
    executor: Executor,
    callback: Callable[[Executor], T],
    *,
    isolation_level: str | None = None,
    retry_policy: RetryPolicy | None = None,
) -> T:
    """
    Runs callback(executor) inside a transaction, committing on success and rolling back on error.

    Serialization failures and deadlocks roll back and retry the whole callback, up to the
    policy's max_attempts, so the callback must be safe to run more than once.
    """
    policy = retry_policy or RetryPolicy()
    transaction_id = uuid4().hex

    def attempt() -> T:
        started = time.perf_counter()
        executor.begin(isolation_level)
        executor._emit_event(
            "txn.begin", success=True, transaction_id=transaction_id, isolation_level=isolation_level,
        )
        try:
            result = callback(executor)
        except Exception:
            executor.rollback()
            executor._emit_event(
                "txn.rollback",
                success=False,
                transaction_id=transaction_id,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            raise
        executor.commit()
        executor._emit_event(
            "txn.commit",
            success=True,
            transaction_id=transaction_id,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return result

    def on_retry(normalized: Exception, attempt_number: int, delay: float) -> None:
        logger.debug(
            "transaction %s attempt %d failed with %s, retrying in %.0f ms",
            transaction_id, attempt_number, type(normalized).__name__, delay * 1000,
        )
        executor._emit_event(
            "retry.scheduled",
            success=False,
            transaction_id=transaction_id,
            retry_attempt=attempt_number,
            max_attempts=policy.max_attempts,
            backoff_ms=delay * 1000,
            error_type=type(normalized).__name__,
        )

    def on_giveup(normalized: Exception, attempt_number: int) -> None:
        if isinstance(normalized, TransientExecutionError):
            logger.debug("transaction %s giving up after %d attempts", transaction_id, attempt_number)
        executor._emit_event(
            "retry.giveup",
            success=False,
            transaction_id=transaction_id,
            retry_attempt=attempt_number,
            max_attempts=policy.max_attempts,
            error_type=type(normalized).__name__,
        )

    return run_with_retry(
        operation=attempt,
        normalize_error=lambda exc: executor._normalize_execution_error(operation="transaction", exc=exc),
        policy=policy,
        on_retry=on_retry,
        on_giveup=on_giveup,
    )
