from dataclasses import dataclass
from typing import Any, Callable

from pgcompose.abstract_syntax_tree.models import Fragment
from pgcompose.compiler.compiled_query import CompiledQuery
from pgcompose.compiler.postgres.postgres_compiler import PostgresCompiler
from pgcompose.results.shape import ResultShape

NOOP_MARKER = "/* marked no-op: won't hit DB unless forced -> */ "

# ==================================================
# Query
# ==================================================

@dataclass(frozen=True)
class Query:
    """
    A built statement: its fragment tree plus the transform for the rows it returns.
    Immutable; compile() and run_result_transform() can be called any number of times.
    """
    fragment: Fragment
    kind: str
    transform: Callable[["Query", Any], Any]
    shape: ResultShape | None = None # set by the select builders
    noop: bool = False # statement cannot affect data; run() skips it unless forced

    def compile(self) -> CompiledQuery:
        compiled = PostgresCompiler().compile(self.fragment)
        if self.noop:
            compiled.text = NOOP_MARKER + compiled.text
        return compiled

    def run_result_transform(self, raw_result: Any) -> Any:
        """
        Converts a driver result ({"rows": [{"result": ...}, ...]}) into the value the builder promises.
        """
        return self.transform(self, raw_result)
