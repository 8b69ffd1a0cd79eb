from pgcompose.compiler.postgres.postgres_compiler import PostgresCompiler, quote_identifier
from pgcompose.compiler.compiled_query import CompiledQuery

__all__ = [
    "PostgresCompiler",
    "CompiledQuery",
    "quote_identifier",
]
