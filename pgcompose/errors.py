from __future__ import annotations

from typing import Any, Iterable


# ==================================================
# Core Error Taxonomy
# ==================================================


class PgComposeError(Exception):
    """
    Base type for every error raised while building, compiling or transforming queries.
    """


class QueryOptionsError(PgComposeError, ValueError):
    """
    Raised when a builder is invoked with malformed or conflicting options.
    """


class UnknownOptionError(QueryOptionsError):
    """
    Raised when a builder receives option names it does not recognize.
    """

    def __init__(self, builder: str, names: Iterable[str]) -> None:
        self.builder = builder
        self.names = sorted(names)
        super().__init__(f"{builder}() got unrecognized option(s): {', '.join(self.names)}")


class CompilationError(PgComposeError):
    """
    Raised when a fragment tree cannot be rendered (e.g. parent() outside a lateral subquery).
    """


class NotExactlyOneError(PgComposeError):
    """
    Raised when a select_exactly_one result, top-level or nested in a lateral join, is absent.
    """

    def __init__(self, query: Any, message: str, path: tuple[str | int, ...] = ()) -> None:
        self.query = query
        self.path = path
        where = "".join(f"[{step!r}]" for step in path)
        super().__init__(f"{message} (at result{where})" if path else message)


class NumericCoercionError(PgComposeError, ValueError):
    """
    Raised when an aggregate result cannot be parsed as a number.
    """

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Aggregate result {value!r} is not numeric")
