from typing import Any, Iterable, Mapping, Sequence

from pgcompose.abstract_syntax_tree.models import (
    AllRows,
    Fragment,
    FragmentNode,
    Identifier,
    Literal,
    Parameter,
    ParentColumn,
    RawText,
)
from pgcompose.errors import CompilationError
from pgcompose.query import Query

# ==================================================
# Composition Entry Point
# ==================================================

def sql(*parts: Any) -> Fragment:
    """
    Builds a fragment from alternating literal text and embedded items.

    Even positions are literal SQL text and must be strings. Odd positions are
    embedded items:

    - a Fragment (or a Query) is spliced in place;
    - a str is a table or column name and is rendered as a quoted identifier;
    - raw(), Default, param(), ident(), parent() and SELF render as themselves;
    - a mapping is a whereable: its entries are ANDed as "column" = value;
    - a list or tuple has each element embedded, joined with ", ";
    - any other value is bound as a parameter.

    Example:
        sql('SELECT * FROM ', 'users', ' WHERE age > ', 18)
    """
    children: list[FragmentNode] = []
    for position, part in enumerate(parts):
        if position % 2 == 0:
            if not isinstance(part, str):
                raise CompilationError(
                    f"sql() part {position} must be literal text (str), got {type(part).__name__}"
                )
            if part:
                children.append(Literal(part))
        else:
            children.append(embed(part))
    return Fragment(children=tuple(children))


def embed(item: Any) -> FragmentNode:
    """
    Converts one embedded item into a fragment node.
    """
    if isinstance(item, FragmentNode):
        return item
    if isinstance(item, Query):
        return item.fragment
    if isinstance(item, str):
        return Identifier(item)
    if isinstance(item, AllRows):
        raise CompilationError("ALL can only be passed as a where condition to a statement builder")
    if isinstance(item, Mapping):
        return whereable(item)
    if isinstance(item, (list, tuple)):
        return join(item)
    return Parameter(item)

# ==================================================
# Item Constructors
# ==================================================

def ident(name: str) -> Identifier:
    return Identifier(name)


def param(value: Any, cast: str | None = None) -> Parameter:
    """
    Binds a value explicitly. Use this to bind a str, which sql() would otherwise treat as an identifier.
    """
    return Parameter(value, cast)


def raw(text: str) -> RawText:
    """
    Marks text to be spliced into the statement verbatim. Never pass untrusted input.
    """
    return RawText(text)


def parent(column: str) -> ParentColumn:
    """
    Refers to a column of the outer query from inside a lateral subquery.
    """
    return ParentColumn(column)


def join(items: Iterable[Any], separator: str | FragmentNode = ", ") -> Fragment:
    """
    Embeds each item and places the separator between them.
    """
    sep = Literal(separator) if isinstance(separator, str) else separator
    children: list[FragmentNode] = []
    for index, item in enumerate(items):
        if index > 0:
            children.append(sep)
        children.append(embed(item))
    return Fragment(children=tuple(children))

# ==================================================
# Column Lists, Value Groups and Whereables
# ==================================================

def cols(columns: Mapping[str, Any] | Sequence[str] | str) -> Fragment:
    """
    Renders a comma-joined list of quoted column names.
    The keys of a mapping are sorted; a sequence keeps its order.
    """
    if isinstance(columns, str):
        names: list[str] = [columns]
    elif isinstance(columns, Mapping):
        names = sorted(columns.keys())
    else:
        names = list(columns)
    return join(Identifier(name) for name in names)


def vals(values: Mapping[str, Any]) -> Fragment:
    """
    Renders a mapping's values in sorted-key order, matching cols() on the same mapping.
    """
    return join(value_node(values[key]) for key in sorted(values.keys()))


def value_node(value: Any) -> FragmentNode:
    """
    Converts a column value: markers and fragments render as themselves, anything else is bound.
    """
    if isinstance(value, FragmentNode):
        return value
    if isinstance(value, Query):
        return value.fragment
    return Parameter(value)


def whereable(conditions: Mapping[str, Any]) -> Fragment:
    """
    Renders ("a" = $1 AND "b" = $2). A fragment value is parenthesized with SELF bound to its key.
    An empty mapping renders TRUE.
    """
    if not conditions:
        return Fragment(children=(Literal("TRUE"),))

    clauses: list[FragmentNode] = []
    for column, value in conditions.items():
        if isinstance(value, Query):
            value = value.fragment
        if isinstance(value, Fragment):
            clauses.append(Fragment(children=(Literal("("), value, Literal(")")), self_column=column))
        else:
            clauses.append(Fragment(children=(Identifier(column), Literal(" = "), value_node(value))))

    return Fragment(children=(Literal("("), join(clauses, " AND "), Literal(")")))
