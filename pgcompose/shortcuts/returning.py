from typing import Any, Mapping, Sequence

from pgcompose.abstract_syntax_tree.models import Fragment, FragmentNode, Identifier
from pgcompose.composer import join, param, sql

EMPTY = Fragment()


def concat(*nodes: FragmentNode) -> Fragment:
    """
    Joins already-built nodes with no separator.
    """
    return Fragment(children=tuple(node for node in nodes if not (isinstance(node, Fragment) and node.is_empty())))


def json_object_pairs(pairs: Sequence[tuple[str, Any]]) -> Fragment:
    """
    jsonb_build_object($1::text, <expr>, ...). Keys are bound as text parameters.
    """
    return sql("jsonb_build_object(", join(sql("", param(key, "text"), ", ", expr) for key, expr in pairs), ")")


def columns_sql(table: str, columns: Sequence[str] | None) -> Fragment:
    """
    The whole row as JSON, or a JSON object of the named columns.
    """
    if columns is None:
        return sql("to_jsonb(", Identifier(table), ".*)")
    return json_object_pairs([(column, Identifier(column)) for column in columns])


def extras_sql(extras: Mapping[str, Any] | None) -> Fragment:
    if not extras:
        return EMPTY
    return sql(" || ", json_object_pairs(list(extras.items())))


def returning_sql(table: str, columns: Sequence[str] | None, extras: Mapping[str, Any] | None) -> Fragment:
    return concat(columns_sql(table, columns), extras_sql(extras))
