from pgcompose.results.shape import ResultMode, ResultShape
from pgcompose.results.transform import (
    QueryResult,
    check_exactly_one,
    coerce_numeric,
    result_of,
    rows_of,
    transform_all,
    transform_first,
    transform_none,
    transform_numeric,
    transform_selection,
)

__all__ = [
    "ResultMode",
    "ResultShape",
    "QueryResult",
    "check_exactly_one",
    "coerce_numeric",
    "result_of",
    "rows_of",
    "transform_all",
    "transform_first",
    "transform_none",
    "transform_numeric",
    "transform_selection",
]
