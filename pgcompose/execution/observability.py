from dataclasses import asdict, dataclass, field
import json
import logging
from typing import Any, Callable, Mapping

# ==================================================
# Hook Signatures
# ==================================================

QueryHook = Callable[["QueryObservation"], None]
EventHook = Callable[["ExecutionEvent"], None]

EVENT_LOGGER_NAME = "pgcompose.events"


@dataclass(frozen=True)
class ObservabilitySettings:
    """
    Callbacks an executor invokes around each statement, plus metadata copied onto every
    observation and event (service name, request id and so on).
    """

    query_observer: QueryHook | None = None
    event_observer: EventHook | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryObservation:
    """
    One compiled statement after it ran. text is the compiled SQL; bound values are
    counted, never copied.
    """

    statement_kind: str | None
    text: str
    value_count: int
    duration_ms: float
    succeeded: bool
    in_transaction: bool
    row_count: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    error_type: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ExecutionEvent:
    """
    Lifecycle events. Names: query.start, query.end, query.noop_skipped, txn.begin,
    txn.commit, txn.rollback, retry.scheduled, retry.giveup.
    """

    timestamp: str
    event: str
    executor: str
    success: bool
    metadata: Mapping[str, Any] = field(default_factory=dict)
    statement_kind: str | None = None
    query_id: str | None = None
    transaction_id: str | None = None
    isolation_level: str | None = None
    duration_ms: float | None = None
    retry_attempt: int | None = None
    max_attempts: int | None = None
    backoff_ms: float | None = None
    error_type: str | None = None
    error_message: str | None = None

# ==================================================
# Logging Hooks
# ==================================================


def execution_event_to_dict(event: ExecutionEvent) -> dict[str, Any]:
    payload = asdict(event)
    payload["metadata"] = dict(event.metadata)
    return payload


def make_json_event_logger(
    *,
    logger: logging.Logger | None = None,
    level: int = logging.INFO,
) -> EventHook:
    """
    An event hook writing each event as one compact JSON line (keys sorted) to the
    'pgcompose.events' logger, or the one given.
    """
    target = logger or logging.getLogger(EVENT_LOGGER_NAME)

    def _log_event(event: ExecutionEvent) -> None:
        if target.isEnabledFor(level):
            line = json.dumps(execution_event_to_dict(event), separators=(",", ":"), sort_keys=True, default=str)
            target.log(level, line)

    return _log_event


def make_query_logger(*, logger: logging.Logger, level: int = logging.DEBUG) -> QueryHook:
    """
    A query hook logging the statement kind, timing and compiled text of each statement.
    """

    def _log_query(observation: QueryObservation) -> None:
        outcome = "ok" if observation.succeeded else f"failed ({observation.error_type})"
        logger.log(
            level,
            "%s %s in %.2f ms, %d value(s): %s",
            observation.statement_kind or "statement",
            outcome,
            observation.duration_ms,
            observation.value_count,
            observation.text,
        )

    return _log_query


def compose_event_observers(*observers: EventHook | None) -> EventHook:
    """
    Fans one event out to several hooks, in order. None entries are skipped.
    """
    active = [observer for observer in observers if observer is not None]

    def _fan_out(event: ExecutionEvent) -> None:
        for observer in active:
            observer(event)

    return _fan_out
