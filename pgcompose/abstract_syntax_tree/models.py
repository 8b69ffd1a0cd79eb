from abc import ABC
from dataclasses import dataclass, field
from typing import Any

# ==================================================
# Base classes
# ==================================================

@dataclass(frozen=True)
class FragmentNode(ABC):
    """
    A generic fragment node. Every piece of a composed statement inherits from this base class.
    """
    pass

# ==================================================
# Leaf nodes
# ==================================================

@dataclass(frozen=True)
class Literal(FragmentNode):
    """
    Literal SQL text written by the caller, emitted verbatim.
    """
    text: str

@dataclass(frozen=True)
class Identifier(FragmentNode):
    """
    A table or column name. Always rendered double-quoted; a dotted name is quoted per part.
    """
    name: str

@dataclass(frozen=True)
class Parameter(FragmentNode):
    """
    A bound value. Compiles to a positional placeholder, optionally followed by a cast.
    """
    value: Any
    cast: str | None = None

@dataclass(frozen=True)
class RawText(FragmentNode):
    """
    Unescaped SQL (e.g. 'now()'). Never quoted or bound; the caller is responsible for its safety.
    """
    text: str

@dataclass(frozen=True)
class DefaultKeyword(FragmentNode):
    """
    Marks a value position that should use the column default. Compiles to DEFAULT.
    """
    pass

@dataclass(frozen=True)
class ParentColumn(FragmentNode):
    """
    A column of the enclosing query, resolved against the parent scope at compile time.
    """
    name: str

@dataclass(frozen=True)
class SelfColumn(FragmentNode):
    """
    The column of the whereable entry currently being compiled.
    """
    pass

# ==================================================
# Composite node
# ==================================================

@dataclass(frozen=True)
class Fragment(FragmentNode):
    """
    An ordered run of child nodes. Optionally opens a scope for parent() or SELF resolution.
    """
    children: tuple[FragmentNode, ...] = field(default_factory=tuple)
    parent_table: str | None = None # alias that parent() refers to inside this fragment
    self_column: str | None = None # column that SELF refers to inside this fragment

    def with_parent(self, table: str) -> "Fragment":
        return Fragment(children=(self,), parent_table=table)

    def with_self(self, column: str) -> "Fragment":
        return Fragment(children=(self,), self_column=column)

    def is_empty(self) -> bool:
        return not self.children

# ==================================================
# Markers
# ==================================================

Default = DefaultKeyword()
SELF = SelfColumn()


class AllRows:
    """
    Where-clause sentinel: no WHERE clause is emitted.
    """

    _instance: "AllRows | None" = None

    def __new__(cls) -> "AllRows":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ALL"


ALL = AllRows()
