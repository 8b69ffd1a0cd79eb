from typing import Any

from pgcompose.abstract_syntax_tree.models import (
    DefaultKeyword,
    FragmentNode,
    Identifier,
    Literal,
    Parameter,
    ParentColumn,
    RawText,
    SelfColumn,
)
from pgcompose.compiler.compiled_query import CompiledQuery
from pgcompose.errors import CompilationError
from pgcompose.traversal.visitor_pattern import Visitor


def quote_identifier(name: str) -> str:
    """
    Double-quotes an identifier, quoting each part of a dotted (schema-qualified) name.
    """
    return ".".join('"' + part.replace('"', '""') + '"' for part in name.split("."))

# ==================================================
# PostgreSQL Compiler
# ==================================================

class PostgresCompiler(Visitor):
    """
    A visitor that compiles a fragment tree into PostgreSQL text with numbered placeholders
    and the list of values bound to them.
    """

    def __init__(self) -> None:
        super().__init__()
        self._parts: list[str] = []
        self._values: list[Any] = []

    def compile(self, node: FragmentNode) -> CompiledQuery:
        """
        The main entry point for compiling a fragment.
        """
        # Reset state for each compilation
        self._parts = []
        self._values = []
        self.reset_scopes()
        self.visit(node)
        return CompiledQuery(text="".join(self._parts), values=self._values)

    # --------------------------------------------------
    # Leaf Nodes
    # --------------------------------------------------

    def visit_Literal(self, node: Literal) -> None:
        self._parts.append(node.text)

    def visit_RawText(self, node: RawText) -> None:
        self._parts.append(node.text)

    def visit_DefaultKeyword(self, node: DefaultKeyword) -> None:
        self._parts.append("DEFAULT")

    def visit_Identifier(self, node: Identifier) -> None:
        self._parts.append(quote_identifier(node.name))

    def visit_Parameter(self, node: Parameter) -> None:
        """
        Binds the value and emits the next placeholder.
        """
        self._values.append(node.value)
        placeholder = f"${len(self._values)}"
        if node.cast:
            placeholder += f"::{node.cast}"
        self._parts.append(placeholder)

    def visit_ParentColumn(self, node: ParentColumn) -> None:
        if self.parent_table is None:
            raise CompilationError(
                f"parent({node.name!r}) used outside a lateral subquery; there is no parent table to refer to."
            )
        self._parts.append(f"{quote_identifier(self.parent_table)}.{quote_identifier(node.name)}")

    def visit_SelfColumn(self, node: SelfColumn) -> None:
        if self.self_column is None:
            raise CompilationError("SELF used outside a whereable value; there is no column to refer to.")
        self._parts.append(quote_identifier(self.self_column))
