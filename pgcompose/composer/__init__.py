from pgcompose.composer.fragments import (
    cols,
    embed,
    ident,
    join,
    param,
    parent,
    raw,
    sql,
    vals,
    value_node,
    whereable,
)

__all__ = [
    "sql",
    "embed",
    "ident",
    "param",
    "raw",
    "parent",
    "join",
    "cols",
    "vals",
    "value_node",
    "whereable",
]
