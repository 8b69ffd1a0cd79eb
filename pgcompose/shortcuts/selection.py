from dataclasses import replace
from typing import Any, Mapping

from pgcompose.abstract_syntax_tree.models import ALL, Fragment, FragmentNode, Identifier, Literal, RawText
from pgcompose.composer import cols, join, param, sql
from pgcompose.errors import QueryOptionsError
from pgcompose.query import Query
from pgcompose.results.shape import ResultMode, ResultShape
from pgcompose.results.transform import transform_numeric, transform_selection
from pgcompose.shortcuts.mutations import Where, where_sql
from pgcompose.shortcuts.options import AggregateOptions, Lock, OrderBy, SelectOptions, resolve_options
from pgcompose.shortcuts.returning import EMPTY, concat, json_object_pairs, returning_sql

PASSTHROUGH_JOIN = "ljoin_passthru"

# ==================================================
# Clause Builders
# ==================================================

def _subquery_fragment(subquery: Query | FragmentNode) -> Fragment:
    fragment = subquery.fragment if isinstance(subquery, Query) else subquery
    return fragment if isinstance(fragment, Fragment) else Fragment(children=(fragment,))


def _lateral_join_name(index: int | None) -> str:
    return PASSTHROUGH_JOIN if index is None else f"ljoin_{index}"


def _lateral_join(subquery: Query | FragmentNode, alias: str, index: int | None) -> Fragment:
    # the subquery resolves parent() against the outer alias
    correlated = _subquery_fragment(subquery).with_parent(alias)
    return sql(" LEFT JOIN LATERAL (", correlated, ") AS ", Identifier(_lateral_join_name(index)), " ON true")


def _lateral_sql(lateral: Any, alias: str) -> tuple[Fragment, Fragment]:
    """
    Returns (columns, joins) for the lateral option.
    """
    if lateral is None:
        return EMPTY, EMPTY
    if not isinstance(lateral, Mapping):
        columns = sql("", Identifier(PASSTHROUGH_JOIN), ".result")
        return columns, _lateral_join(lateral, alias, None)

    names = sorted(lateral)
    pairs = [(name, sql("", Identifier(_lateral_join_name(i)), ".result")) for i, name in enumerate(names)]
    joins = concat(*(_lateral_join(lateral[name], alias, i) for i, name in enumerate(names)))
    return sql(" || ", json_object_pairs(pairs)), joins


def _distinct_sql(distinct: Any) -> Fragment:
    if distinct is False or distinct is None:
        return EMPTY
    if distinct is True:
        return sql(" DISTINCT")
    if isinstance(distinct, (FragmentNode, Query)):
        return sql(" DISTINCT ON (", distinct, ")")
    return sql(" DISTINCT ON (", cols(distinct), ")")


def _order_item_sql(order: OrderBy) -> Fragment:
    nulls = sql(" NULLS ", RawText(order.nulls)) if order.nulls else EMPTY
    return concat(sql("", order.by, " ", RawText(order.direction)), nulls)


def _lock_sql(lock: Lock) -> Fragment:
    of = sql(" OF ", join(Identifier(table) for table in lock.of)) if lock.of else EMPTY
    wait = RawText(f" {lock.wait}") if lock.wait else EMPTY
    return concat(RawText(f" FOR {lock.mode}"), of, wait)


def _limit_sql(opts: SelectOptions) -> Fragment:
    offset = sql(" OFFSET ", param(opts.offset)) if opts.offset is not None else EMPTY
    if opts.limit is None:
        return offset
    if opts.with_ties:
        # FETCH FIRST must follow OFFSET
        return concat(offset, sql(" FETCH FIRST ", param(opts.limit), " ROWS WITH TIES"))
    return concat(sql(" LIMIT ", param(opts.limit)), offset)


def _shape_of(subquery: Any) -> ResultShape | None:
    return subquery.shape if isinstance(subquery, Query) else None


def _result_shape(mode: ResultMode, lateral: Any) -> ResultShape:
    if lateral is None:
        return ResultShape(mode=mode)
    if not isinstance(lateral, Mapping):
        return ResultShape(mode=mode, passthrough=_shape_of(lateral))
    fields = tuple((name, _shape_of(lateral[name])) for name in sorted(lateral))
    return ResultShape(mode=mode, lateral_fields=fields)

# ==================================================
# Select Core
# ==================================================

def _select(
    table: str,
    where: Where,
    opts: SelectOptions,
    mode: ResultMode,
    kind: str,
    aggregate: str | None = None,
) -> Query:
    alias = opts.alias or table
    alias_sql = sql(" AS ", Identifier(alias)) if alias != table else EMPTY
    lateral_columns, lateral_joins = _lateral_sql(opts.lateral, alias)

    if opts.lateral is not None and not isinstance(opts.lateral, Mapping):
        columns = EMPTY # the passthrough lateral replaces the row
    elif aggregate is not None:
        target = cols(opts.columns) if opts.columns is not None else sql("", Identifier(alias), ".*")
        columns = sql("", RawText(aggregate), "(", target, ")")
    else:
        columns = returning_sql(alias, opts.columns, opts.extras)

    if opts.group_by is None:
        group_by = EMPTY
    elif isinstance(opts.group_by, (FragmentNode, Query)):
        group_by = sql(" GROUP BY ", opts.group_by)
    else:
        group_by = sql(" GROUP BY ", cols(opts.group_by))

    having = sql(" HAVING ", opts.having) if opts.having is not None else EMPTY
    order = sql(" ORDER BY ", join(_order_item_sql(item) for item in opts.order)) if opts.order else EMPTY
    locks = concat(*(_lock_sql(lock) for lock in opts.lock)) if opts.lock else EMPTY

    rows_query = concat(
        Literal("SELECT"),
        _distinct_sql(opts.distinct),
        Literal(" "),
        columns,
        lateral_columns,
        sql(" AS result FROM ", Identifier(table)),
        alias_sql,
        lateral_joins,
        where_sql(where),
        group_by,
        having,
        order,
        _limit_sql(opts),
        locks,
    )

    if mode is ResultMode.MANY:
        # aggregating in an outer query keeps ORDER BY and LIMIT working as usual
        fragment = sql(
            "SELECT coalesce(jsonb_agg(result), '[]') AS result FROM (", rows_query, ") AS ",
            RawText(quote_identifier_whole(f"sq_{alias}")),
        )
    else:
        fragment = rows_query

    transform = transform_numeric if mode is ResultMode.NUMERIC else transform_selection
    return Query(fragment=fragment, kind=kind, transform=transform, shape=_result_shape(mode, opts.lateral))


def quote_identifier_whole(name: str) -> str:
    """
    Quotes a generated name as one identifier, dots included.
    """
    return '"' + name.replace('"', '""') + '"'

# ==================================================
# Public Builders
# ==================================================

def select(table: str, where: Where = ALL, **options: Any) -> Query:
    """
    Selects matching rows as a JSON array (a list after transform; [] when nothing matches).

    Options: order, limit, offset, with_ties, distinct, group_by, having, lateral, lock,
    columns, extras, alias.
    """
    opts = resolve_options(SelectOptions, "select", options)
    return _select(table, where, opts, ResultMode.MANY, "select")


def _single_row_options(builder: str, options: Mapping[str, Any]) -> SelectOptions:
    for name in ("limit", "with_ties"):
        if name in options:
            raise QueryOptionsError(f"{builder}() always returns at most one row; '{name}' is not accepted")
    return replace(resolve_options(SelectOptions, builder, options), limit=1)


def select_one(table: str, where: Where = ALL, **options: Any) -> Query:
    """
    Selects the first matching row as a JSON object (None when nothing matches).
    """
    opts = _single_row_options("select_one", options)
    return _select(table, where, opts, ResultMode.ONE, "select_one")


def select_exactly_one(table: str, where: Where = ALL, **options: Any) -> Query:
    """
    Like select_one, but the result transform raises NotExactlyOneError when nothing matches,
    including when this query is used as a lateral of another select.
    """
    opts = _single_row_options("select_exactly_one", options)
    return _select(table, where, opts, ResultMode.EXACTLY_ONE, "select_exactly_one")


def _aggregate(name: str, table: str, where: Where, options: Mapping[str, Any]) -> Query:
    agg = resolve_options(AggregateOptions, name, options)
    return _select(table, where, SelectOptions(columns=agg.columns), ResultMode.NUMERIC, name, aggregate=name)


def count(table: str, where: Where = ALL, **options: Any) -> Query:
    """
    SELECT count(...) AS result. Option: columns. The transform returns a number.
    """
    return _aggregate("count", table, where, options)


def sum(table: str, where: Where = ALL, **options: Any) -> Query:
    return _aggregate("sum", table, where, options)


def avg(table: str, where: Where = ALL, **options: Any) -> Query:
    return _aggregate("avg", table, where, options)


def min(table: str, where: Where = ALL, **options: Any) -> Query:
    return _aggregate("min", table, where, options)


def max(table: str, where: Where = ALL, **options: Any) -> Query:
    return _aggregate("max", table, where, options)
