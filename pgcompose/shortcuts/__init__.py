from pgcompose.shortcuts.mutations import deletes, insert, truncate, update, upsert
from pgcompose.shortcuts.options import (
    DO_NOTHING,
    AggregateOptions,
    Constraint,
    Lock,
    OrderBy,
    ReturningOptions,
    SelectOptions,
    UpsertOptions,
    constraint,
)
from pgcompose.shortcuts.selection import (
    avg,
    count,
    max,
    min,
    select,
    select_exactly_one,
    select_one,
    sum,
)

__all__ = [
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
    "Constraint",
    "constraint",
    "OrderBy",
    "Lock",
    "ReturningOptions",
    "SelectOptions",
    "AggregateOptions",
    "UpsertOptions",
]
