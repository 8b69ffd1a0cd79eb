from pgcompose import (
    __version__,
    ALL,
    CompiledQuery,
    DO_NOTHING,
    ObservabilitySettings,
    PostgresExecutor,
    Query,
    RetryPolicy,
    insert,
    run,
    select_exactly_one,
    sql,
    transaction,
)
from pgcompose.compiler import CompiledQuery as CompiledQueryFromCompiler
from pgcompose.execution import ExecutionEvent, execution_event_to_dict, make_json_event_logger
from pgcompose.shortcuts import DO_NOTHING as DO_NOTHING_FROM_SHORTCUTS


def test_root_public_api_exports_are_importable() -> None:
    assert __version__
    assert PostgresExecutor is not None
    assert RetryPolicy is not None
    assert ObservabilitySettings is not None
    assert CompiledQuery is not None
    assert callable(run) and callable(transaction)
    assert repr(ALL) == "ALL"


def test_compiler_exports_include_compiled_query() -> None:
    assert CompiledQueryFromCompiler is CompiledQuery


def test_builders_return_queries() -> None:
    assert isinstance(insert("users", {"a": 1}), Query)
    assert isinstance(select_exactly_one("users", {"a": 1}), Query)
    assert DO_NOTHING is DO_NOTHING_FROM_SHORTCUTS
    assert sql("SELECT 1").is_empty() is False


def test_json_event_logger_writes_one_line(caplog) -> None:
    import logging

    logger = logging.getLogger("pgcompose.test.events")
    hook = make_json_event_logger(logger=logger)
    event = ExecutionEvent(timestamp="2024-01-01T00:00:00+00:00", event="txn.commit", executor="X", success=True)

    with caplog.at_level(logging.INFO, logger="pgcompose.test.events"):
        hook(event)

    assert len(caplog.records) == 1
    assert '"event":"txn.commit"' in caplog.records[0].getMessage()
    assert execution_event_to_dict(event)["success"] is True
