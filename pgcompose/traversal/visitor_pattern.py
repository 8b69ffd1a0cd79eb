from typing import Any

from pgcompose.abstract_syntax_tree.models import Fragment, FragmentNode
from pgcompose.errors import CompilationError

class Visitor:
    """
    Walks a fragment tree, dispatching each node to visit_<ClassName>.

    Fragments are handled here: their children are visited in order, and the lateral
    parent table and whereable column they declare are in scope while that happens.
    """
    def __init__(self) -> None:
        self._parent_tables: list[str] = []
        self._self_columns: list[str] = []

    def visit(self, node: FragmentNode) -> Any:
        method_name = f'visit_{node.__class__.__name__}'
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: FragmentNode) -> Any:
        raise CompilationError(f"{self.__class__.__name__} cannot render {node.__class__.__name__} nodes")

    def visit_Fragment(self, node: Fragment) -> None:
        if node.parent_table is not None:
            self._parent_tables.append(node.parent_table)
        if node.self_column is not None:
            self._self_columns.append(node.self_column)
        try:
            for child in node.children:
                self.visit(child)
        finally:
            if node.self_column is not None:
                self._self_columns.pop()
            if node.parent_table is not None:
                self._parent_tables.pop()

    def reset_scopes(self) -> None:
        self._parent_tables = []
        self._self_columns = []

    @property
    def parent_table(self) -> str | None:
        """The innermost lateral parent table, if any."""
        return self._parent_tables[-1] if self._parent_tables else None

    @property
    def self_column(self) -> str | None:
        """The column of the innermost whereable value, if any."""
        return self._self_columns[-1] if self._self_columns else None
