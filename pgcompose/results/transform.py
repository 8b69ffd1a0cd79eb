from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Sequence

from pgcompose.errors import NotExactlyOneError, NumericCoercionError
from pgcompose.results.shape import ResultMode, ResultShape

if TYPE_CHECKING:
    from pgcompose.query import Query

# ==================================================
# Driver Result Shape
# ==================================================


@dataclass
class QueryResult:
    """
    The part of a driver result the transforms read: rows of {"result": value}.
    """

    rows: Sequence[Any] = field(default_factory=list)
    command: str | None = None
    row_count: int | None = None


def rows_of(raw_result: Any) -> Sequence[Any]:
    if isinstance(raw_result, Mapping):
        return raw_result.get("rows") or []
    return getattr(raw_result, "rows", None) or []


def result_of(row: Any) -> Any:
    if isinstance(row, Mapping):
        return row.get("result")
    # tuple rows from a default cursor: the single "result" column
    return row[0]

# ==================================================
# Exactly-One Enforcement
# ==================================================

_Pending = tuple[Any, ResultShape, tuple[str | int, ...]]


def _row_checks(row: Any, shape: ResultShape, path: tuple[str | int, ...]) -> Iterator[_Pending]:
    if shape.passthrough is not None:
        yield row, shape.passthrough, path
        return
    for name, nested in shape.lateral_fields:
        if nested is None:
            continue
        value = row.get(name) if isinstance(row, Mapping) else None
        yield value, nested, path + (name,)


def check_exactly_one(query: Query, value: Any, shape: ResultShape, *, nested: bool = False) -> None:
    """
    Walks a transformed result against its shape and raises NotExactlyOneError on the first
    absent value that was built with select_exactly_one. Every row of every level is inspected.
    nested marks value as coming from a lateral rather than the outer query.
    """
    if not shape.needs_checks():
        return

    pending: list[_Pending] = [(value, shape, ())]
    while pending:
        current, current_shape, path = pending.pop()

        if current_shape.mode is ResultMode.MANY:
            if current is None:
                continue
            checks: list[_Pending] = []
            for index, row in enumerate(current):
                checks.extend(_row_checks(row, current_shape, path + (index,)))
            pending.extend(reversed(checks))
            continue

        if current_shape.mode in (ResultMode.ONE, ResultMode.EXACTLY_ONE):
            if current is None:
                if current_shape.mode is ResultMode.EXACTLY_ONE:
                    message = (
                        "One result expected but none returned"
                        if not path and not nested
                        else "One nested lateral result expected but none returned"
                    )
                    raise NotExactlyOneError(query, message + " (hint: check .query.compile() on this error)", path)
                continue
            pending.extend(reversed(list(_row_checks(current, current_shape, path))))

# ==================================================
# Numeric Coercion
# ==================================================


def coerce_numeric(value: Any) -> int | float | None:
    """
    Converts an aggregate result to int (integral values) or float.
    At the top level the driver hands back numeric/bigint results as text or Decimal.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise NumericCoercionError(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value:
            raise NumericCoercionError(value)
        return value

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            raise NumericCoercionError(value) from None
    else:
        raise NumericCoercionError(value)

    if number.is_nan():
        raise NumericCoercionError(value)
    if number.is_infinite():
        return float(number)
    if number == number.to_integral_value():
        return int(number)
    return float(number)

# ==================================================
# Transforms
# ==================================================


def transform_first(query: Query, raw_result: Any) -> Any:
    rows = rows_of(raw_result)
    return result_of(rows[0]) if rows else None


def transform_all(query: Query, raw_result: Any) -> list[Any]:
    return [result_of(row) for row in rows_of(raw_result)]


def transform_none(query: Query, raw_result: Any) -> None:
    return None


def transform_selection(query: Query, raw_result: Any) -> Any:
    """
    Used by select, select_one and select_exactly_one: the first row's result, checked against
    the query's shape.
    """
    rows = rows_of(raw_result)
    value = result_of(rows[0]) if rows else None
    shape = query.shape
    if shape is None:
        return value
    if shape.mode is ResultMode.MANY:
        if value is None:
            value = []
    elif rows and value is None and shape.passthrough is not None:
        # the outer row exists; its passthrough lateral came back empty
        check_exactly_one(query, None, shape.passthrough, nested=True)
        return value
    check_exactly_one(query, value, shape)
    return value


def transform_numeric(query: Query, raw_result: Any) -> int | float | None:
    return coerce_numeric(transform_first(query, raw_result))
