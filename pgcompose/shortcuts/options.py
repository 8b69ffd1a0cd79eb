from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Sequence, TypeVar

from pgcompose.abstract_syntax_tree.models import FragmentNode
from pgcompose.errors import QueryOptionsError, UnknownOptionError
from pgcompose.query import Query

T = TypeVar("T")

ORDER_DIRECTIONS = ("ASC", "DESC")
NULLS_ORDERINGS = ("FIRST", "LAST")
LOCK_MODES = ("UPDATE", "NO KEY UPDATE", "SHARE", "KEY SHARE")
LOCK_WAIT_POLICIES = ("NOWAIT", "SKIP LOCKED")
REPORT_ACTIONS = ("append", "suppress")


# ==================================================
# Upsert Markers
# ==================================================


class DoNothing:
    """
    update_columns sentinel: resolve conflicts with DO NOTHING.
    """

    _instance: DoNothing | None = None

    def __new__(cls) -> DoNothing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DO_NOTHING"


DO_NOTHING = DoNothing()


@dataclass(frozen=True)
class Constraint:
    """
    A named constraint used as an upsert conflict target.
    """

    name: str


def constraint(name: str) -> Constraint:
    return Constraint(name)


# ==================================================
# Option Helpers
# ==================================================


def resolve_options(options_type: type[T], builder: str, values: Mapping[str, Any]) -> T:
    """
    Builds an options dataclass from keyword arguments, rejecting names it does not define.
    """
    known = {f.name for f in fields(options_type)}  # type: ignore[arg-type]
    unknown = set(values) - known
    if unknown:
        raise UnknownOptionError(builder, unknown)
    return options_type(**values)


def _column_list(value: str | Sequence[str] | None, option: str) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, Mapping) or not isinstance(value, Sequence):
        raise QueryOptionsError(f"{option} must be a column name or a sequence of column names")
    names = list(value)
    for name in names:
        if not isinstance(name, str):
            raise QueryOptionsError(f"{option} must contain column names, got {name!r}")
    return names


def _is_fragment(value: Any) -> bool:
    return isinstance(value, (FragmentNode, Query))


def _check_count(value: Any, option: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise QueryOptionsError(f"{option} must be a non-negative integer, got {value!r}")


# ==================================================
# Clause Options
# ==================================================


@dataclass(slots=True)
class OrderBy:
    """
    One ORDER BY item. 'by' is a fragment or a column name.
    """

    by: Any
    direction: str = "ASC"
    nulls: str | None = None

    def __post_init__(self) -> None:
        if self.direction not in ORDER_DIRECTIONS:
            raise QueryOptionsError(f"Direction must be ASC/DESC, not {self.direction!r}")
        if self.nulls is not None and self.nulls not in NULLS_ORDERINGS:
            raise QueryOptionsError(f"Nulls must be FIRST/LAST/None, not {self.nulls!r}")

    @classmethod
    def coerce(cls, value: Any) -> OrderBy:
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return resolve_options(cls, "order", value)
        raise QueryOptionsError(f"order items must be OrderBy or mappings, got {value!r}")


@dataclass(slots=True)
class Lock:
    """
    One locking clause: FOR <mode> [OF tables] [<wait>].
    """

    mode: str = "UPDATE"
    wait: str | None = None
    of: str | Sequence[str] | None = None

    def __post_init__(self) -> None:
        if self.mode not in LOCK_MODES:
            raise QueryOptionsError(f"Lock mode must be one of {', '.join(LOCK_MODES)}, not {self.mode!r}")
        if self.wait is not None and self.wait not in LOCK_WAIT_POLICIES:
            raise QueryOptionsError(f"Lock wait must be NOWAIT/SKIP LOCKED/None, not {self.wait!r}")
        self.of = _column_list(self.of, "lock 'of'")

    @classmethod
    def coerce(cls, value: Any) -> Lock:
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            # 'for' is the natural key but a Python keyword
            renamed = {("mode" if key == "for" else key): item for key, item in value.items()}
            return resolve_options(cls, "lock", renamed)
        raise QueryOptionsError(f"lock items must be Lock or mappings, got {value!r}")


# ==================================================
# Builder Options
# ==================================================


@dataclass(slots=True)
class ReturningOptions:
    """
    Options shared by insert, update and deletes.
    """

    returning: Sequence[str] | None = None
    extras: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        self.returning = _column_list(self.returning, "returning")
        if self.extras is not None and not isinstance(self.extras, Mapping):
            raise QueryOptionsError("extras must be a mapping of result keys to fragments or column names")


@dataclass(slots=True)
class SelectOptions:
    order: Any = None
    limit: int | None = None
    offset: int | None = None
    with_ties: bool = False
    distinct: Any = False
    group_by: Any = None
    having: Any = None
    lateral: Any = None
    lock: Any = None
    columns: Sequence[str] | None = None
    extras: Mapping[str, Any] | None = None
    alias: str | None = None

    def __post_init__(self) -> None:
        if self.order is not None:
            items = self.order if isinstance(self.order, (list, tuple)) else [self.order]
            self.order = [OrderBy.coerce(item) for item in items]
        if self.lock is not None:
            items = self.lock if isinstance(self.lock, (list, tuple)) else [self.lock]
            self.lock = [Lock.coerce(item) for item in items]

        _check_count(self.limit, "limit")
        _check_count(self.offset, "offset")
        if self.with_ties:
            if self.limit is None:
                raise QueryOptionsError("with_ties requires a limit")
            if not self.order:
                raise QueryOptionsError("with_ties requires an order")

        if not (isinstance(self.distinct, bool) or _is_fragment(self.distinct)):
            self.distinct = _column_list(self.distinct, "distinct")
            if self.distinct == []:
                raise QueryOptionsError("distinct needs at least one column; use True for plain DISTINCT")
        if self.group_by is not None and not _is_fragment(self.group_by):
            self.group_by = _column_list(self.group_by, "group_by")
            if self.group_by == []:
                raise QueryOptionsError("group_by needs at least one column")
        if self.having is not None and not _is_fragment(self.having):
            raise QueryOptionsError("having must be a fragment")

        if self.lateral is not None:
            if isinstance(self.lateral, Mapping):
                for name, subquery in self.lateral.items():
                    if not isinstance(name, str) or not _is_fragment(subquery):
                        raise QueryOptionsError("lateral must map field names to queries or fragments")
            elif not _is_fragment(self.lateral):
                raise QueryOptionsError("lateral must be a query, a fragment, or a mapping of them")
            elif self.columns is not None or self.extras is not None:
                raise QueryOptionsError("columns and extras cannot be combined with a lateral that replaces the row")

        self.columns = _column_list(self.columns, "columns")
        if self.extras is not None and not isinstance(self.extras, Mapping):
            raise QueryOptionsError("extras must be a mapping of result keys to fragments or column names")


@dataclass(slots=True)
class AggregateOptions:
    columns: Sequence[str] | None = None

    def __post_init__(self) -> None:
        self.columns = _column_list(self.columns, "columns")


@dataclass(slots=True)
class UpsertOptions:
    update_columns: Any = None
    update_values: Mapping[str, Any] | None = None
    no_null_update_columns: Sequence[str] | None = None
    report_action: str = "append"
    returning: Sequence[str] | None = None
    extras: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.update_columns is not DO_NOTHING:
            self.update_columns = _column_list(self.update_columns, "update_columns")
        self.no_null_update_columns = _column_list(self.no_null_update_columns, "no_null_update_columns") or []
        if self.update_values is not None and not isinstance(self.update_values, Mapping):
            raise QueryOptionsError("update_values must be a mapping of column names to fragments")
        self.update_values = dict(self.update_values or {})

        if self.update_columns is DO_NOTHING:
            if self.update_values:
                raise QueryOptionsError("update_values cannot be combined with update_columns=DO_NOTHING")
            if self.no_null_update_columns:
                raise QueryOptionsError("no_null_update_columns cannot be combined with update_columns=DO_NOTHING")

        if self.report_action not in REPORT_ACTIONS:
            raise QueryOptionsError(f"report_action must be 'append' or 'suppress', not {self.report_action!r}")

        self.returning = _column_list(self.returning, "returning")
        if self.extras is not None and not isinstance(self.extras, Mapping):
            raise QueryOptionsError("extras must be a mapping of result keys to fragments or column names")
