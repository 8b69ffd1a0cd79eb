from typing import Any, Mapping, Sequence

from pgcompose.abstract_syntax_tree.models import (
    ALL,
    AllRows,
    Default,
    Fragment,
    FragmentNode,
    Identifier,
    Literal,
    RawText,
)
from pgcompose.composer import cols, join, sql, vals, value_node, whereable
from pgcompose.errors import QueryOptionsError
from pgcompose.query import Query
from pgcompose.results.transform import transform_all, transform_first, transform_none
from pgcompose.shortcuts.options import (
    DO_NOTHING,
    Constraint,
    ReturningOptions,
    UpsertOptions,
    resolve_options,
)
from pgcompose.shortcuts.returning import EMPTY, concat, returning_sql

Record = Mapping[str, Any]
Where = Mapping[str, Any] | FragmentNode | Query | AllRows

TRUNCATE_OPTIONS = ("CONTINUE IDENTITY", "RESTART IDENTITY", "RESTRICT", "CASCADE")

ACTION_REPORT = Literal(" || jsonb_build_object('$action', CASE xmax WHEN 0 THEN 'INSERT' ELSE 'UPDATE' END)")

# ==================================================
# Shared Helpers
# ==================================================

def where_sql(where: Where) -> Fragment:
    """
    ' WHERE <condition>' for a whereable mapping or a fragment; nothing for ALL.
    """
    if where is ALL:
        return EMPTY
    if isinstance(where, Mapping):
        return sql(" WHERE ", whereable(where))
    if isinstance(where, (FragmentNode, Query)):
        return sql(" WHERE ", where)
    raise QueryOptionsError(f"where must be a mapping, a fragment or ALL, got {type(where).__name__}")


def _records(values: Record | Sequence[Record], builder: str) -> tuple[list[Record], bool]:
    if isinstance(values, Mapping):
        return [values], False
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise QueryOptionsError(f"{builder}() values must be a mapping or a sequence of mappings")
    records = list(values)
    for record in records:
        if not isinstance(record, Mapping):
            raise QueryOptionsError(f"{builder}() values must be a mapping or a sequence of mappings, got {record!r}")
    return records, True


def union_keys(records: Sequence[Record]) -> list[str]:
    """
    Every key across the records, in first-seen order.
    """
    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def _values_rows(records: Sequence[Record], columns: Sequence[str]) -> Fragment:
    # a key missing from one record takes the column default in that row
    return join(
        sql("(", join(value_node(record.get(column, Default)) for column in columns), ")")
        for record in records
    )


def _insert_body(table: str, records: Sequence[Record], builder: str) -> tuple[Fragment, list[str]]:
    columns = sorted(union_keys(records))
    if not columns:
        if len(records) > 1:
            raise QueryOptionsError(f"{builder}() cannot insert several records that have no columns")
        return sql("INSERT INTO ", Identifier(table), " DEFAULT VALUES"), columns
    body = sql("INSERT INTO ", Identifier(table), " (", cols(columns), ") VALUES ", _values_rows(records, columns))
    return body, columns


def _noop_insert(table: str, kind: str) -> Query:
    return Query(
        fragment=sql("INSERT INTO ", Identifier(table), " SELECT null WHERE false"),
        kind=kind,
        transform=transform_all,
        noop=True,
    )

# ==================================================
# Insert / Update / Delete
# ==================================================

def insert(table: str, values: Record | Sequence[Record], **options: Any) -> Query:
    """
    INSERT one record or many. Options: returning, extras.

    The column list is the sorted union of every record's keys. An empty sequence produces a
    no-op query that run() skips unless forced.
    """
    opts = resolve_options(ReturningOptions, "insert", options)
    records, many = _records(values, "insert")
    if many and not records:
        return _noop_insert(table, "insert")

    body, _ = _insert_body(table, records, "insert")
    fragment = sql("", body, " RETURNING ", returning_sql(table, opts.returning, opts.extras), " AS result")
    return Query(fragment=fragment, kind="insert", transform=transform_all if many else transform_first)


def update(table: str, values: Record, where: Where, **options: Any) -> Query:
    """
    UPDATE "t" SET (cols) = ROW(vals) WHERE ... RETURNING .... Options: returning, extras.
    """
    opts = resolve_options(ReturningOptions, "update", options)
    if not isinstance(values, Mapping):
        raise QueryOptionsError("update() values must be a mapping of columns to new values")
    if not values:
        raise QueryOptionsError("update() needs at least one column to set")

    fragment = concat(
        sql("UPDATE ", Identifier(table), " SET (", cols(values), ") = ROW(", vals(values), ")"),
        where_sql(where),
        sql(" RETURNING ", returning_sql(table, opts.returning, opts.extras), " AS result"),
    )
    return Query(fragment=fragment, kind="update", transform=transform_all)


def deletes(table: str, where: Where, **options: Any) -> Query:
    """
    DELETE FROM "t" WHERE ... RETURNING .... Options: returning, extras.
    """
    opts = resolve_options(ReturningOptions, "deletes", options)
    fragment = concat(
        sql("DELETE FROM ", Identifier(table)),
        where_sql(where),
        sql(" RETURNING ", returning_sql(table, opts.returning, opts.extras), " AS result"),
    )
    return Query(fragment=fragment, kind="delete", transform=transform_all)

# ==================================================
# Upsert
# ==================================================

def _conflict_target_sql(conflict_target: str | Sequence[str] | Constraint) -> Fragment:
    if isinstance(conflict_target, Constraint):
        return sql("ON CONSTRAINT ", Identifier(conflict_target.name))
    targets = [conflict_target] if isinstance(conflict_target, str) else list(conflict_target)
    if not targets:
        raise QueryOptionsError("upsert() needs at least one conflict target column")
    return sql("(", cols(targets), ")")


def _update_targets(records: Sequence[Record], opts: UpsertOptions) -> list[str]:
    if opts.update_columns is DO_NOTHING:
        return []
    base = opts.update_columns if opts.update_columns is not None else union_keys(records)
    targets: dict[str, None] = dict.fromkeys(base)
    for column in opts.update_values:
        targets.setdefault(column, None)
    return list(targets)


def _update_expression(table: str, column: str, opts: UpsertOptions) -> FragmentNode:
    if column in opts.update_values:
        return value_node(opts.update_values[column])
    excluded = sql("EXCLUDED.", Identifier(column))
    if column in opts.no_null_update_columns:
        return sql(
            "CASE WHEN ", excluded, " IS NULL THEN ", Identifier(table), ".", Identifier(column),
            " ELSE ", excluded, " END",
        )
    return excluded


def upsert(
    table: str,
    values: Record | Sequence[Record],
    conflict_target: str | Sequence[str] | Constraint,
    **options: Any,
) -> Query:
    """
    INSERT ... ON CONFLICT ... DO UPDATE / DO NOTHING.

    Options: update_columns (columns, or DO_NOTHING), update_values (column -> fragment),
    no_null_update_columns, report_action ('append' or 'suppress'), returning, extras.

    Unless suppressed, each returned object carries '$action': 'INSERT' or 'UPDATE', told apart by
    the row's xmax system column.
    """
    opts = resolve_options(UpsertOptions, "upsert", options)
    records, many = _records(values, "upsert")
    if many and not records:
        return _noop_insert(table, "upsert")

    conflict_sql = _conflict_target_sql(conflict_target)
    body, _ = _insert_body(table, records, "upsert")
    targets = _update_targets(records, opts)

    if targets:
        action_sql = sql(
            "DO UPDATE SET (", cols(targets), ") = ROW(",
            join(_update_expression(table, column, opts) for column in targets), ")",
        )
    else:
        action_sql = sql("DO NOTHING")

    report_sql = EMPTY if opts.report_action == "suppress" else ACTION_REPORT
    fragment = sql(
        "", body, " ON CONFLICT ", conflict_sql, " ", action_sql,
        " RETURNING ", concat(returning_sql(table, opts.returning, opts.extras), report_sql), " AS result",
    )
    # a single record hitting DO NOTHING returns no row, hence transform_first's None
    return Query(fragment=fragment, kind="upsert", transform=transform_all if many else transform_first)

# ==================================================
# Truncate
# ==================================================

def truncate(tables: str | Sequence[str], *options: str) -> Query:
    """
    TRUNCATE one or more tables. Options: 'RESTART IDENTITY' / 'CONTINUE IDENTITY',
    'CASCADE' / 'RESTRICT'.
    """
    names = [tables] if isinstance(tables, str) else list(tables)
    if not names:
        raise QueryOptionsError("truncate() needs at least one table")
    for option in options:
        if option not in TRUNCATE_OPTIONS:
            raise QueryOptionsError(f"truncate() option must be one of {', '.join(TRUNCATE_OPTIONS)}, not {option!r}")
    if {"CONTINUE IDENTITY", "RESTART IDENTITY"} <= set(options) or {"RESTRICT", "CASCADE"} <= set(options):
        raise QueryOptionsError("truncate() options conflict: " + ", ".join(options))

    fragment = concat(
        sql("TRUNCATE ", join(Identifier(name) for name in names)),
        RawText(" " + " ".join(options)) if options else EMPTY,
    )
    return Query(fragment=fragment, kind="truncate", transform=transform_none)
