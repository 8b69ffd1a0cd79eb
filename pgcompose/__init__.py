__version__ = "0.1.0"

from pgcompose.abstract_syntax_tree.models import ALL, SELF, Default, Fragment
from pgcompose.compiler import CompiledQuery, PostgresCompiler
from pgcompose.composer import cols, ident, join, param, parent, raw, sql, vals
from pgcompose.errors import (
    CompilationError,
    NotExactlyOneError,
    NumericCoercionError,
    PgComposeError,
    QueryOptionsError,
    UnknownOptionError,
)
from pgcompose.execution import ObservabilitySettings, PostgresExecutor, RetryPolicy, run, transaction
from pgcompose.query import Query
from pgcompose.results import QueryResult
from pgcompose.shortcuts import (
    DO_NOTHING,
    Lock,
    OrderBy,
    avg,
    constraint,
    count,
    deletes,
    insert,
    max,
    min,
    select,
    select_exactly_one,
    select_one,
    sum,
    truncate,
    update,
    upsert,
)

__all__ = [
    "__version__",
    "ALL",
    "SELF",
    "Default",
    "Fragment",
    "CompiledQuery",
    "PostgresCompiler",
    "sql",
    "ident",
    "param",
    "raw",
    "parent",
    "join",
    "cols",
    "vals",
    "PgComposeError",
    "QueryOptionsError",
    "UnknownOptionError",
    "CompilationError",
    "NotExactlyOneError",
    "NumericCoercionError",
    "PostgresExecutor",
    "ObservabilitySettings",
    "RetryPolicy",
    "run",
    "transaction",
    "Query",
    "QueryResult",
    "insert",
    "update",
    "deletes",
    "upsert",
    "truncate",
    "select",
    "select_one",
    "select_exactly_one",
    "count",
    "sum",
    "avg",
    "min",
    "max",
    "DO_NOTHING",
    "constraint",
    "OrderBy",
    "Lock",
]
