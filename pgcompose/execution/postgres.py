from dataclasses import dataclass
import logging
from typing import Any

from pgcompose.compiler.compiled_query import CompiledQuery
from pgcompose.execution.base import ISOLATION_LEVELS, Executor
from pgcompose.execution.observability import ObservabilitySettings
from pgcompose.results.transform import QueryResult

logger = logging.getLogger(__name__)


@dataclass
class _Transaction:
    conn: Any
    owned: bool
    autocommit_before: bool

# ==================================================
# PostgreSQL Executor
# ==================================================

class PostgresExecutor(Executor):
    """
    Runs compiled statements through psycopg 3. Statements go out through a RawCursor,
    so the compiler's $n placeholders reach the server untouched, and rows come back as dicts.
    """

    def __init__(
        self,
        connection_info: str | dict[str, Any] | None = None,
        connection: Any | None = None,
        observability_settings: ObservabilitySettings | None = None,
    ) -> None:
        """
        Args:
            connection_info: A conninfo string or keyword arguments for psycopg.connect. A
                connection is opened per statement (or per transaction) and closed afterwards.
            connection: An open psycopg connection. It is borrowed: the executor never closes it.
            observability_settings: Optional query/event hooks.
        """
        if connection is None and connection_info is None:
            raise ValueError("PostgresExecutor needs connection_info or an open connection.")

        self.connection_info = connection_info
        self.connection = connection
        self.observability_settings = observability_settings
        self._psycopg: Any | None = None
        self._txn: _Transaction | None = None

    def _get_psycopg(self) -> Any:
        if self._psycopg is None:
            try:
                import psycopg
                import psycopg.rows
            except ImportError:
                raise ImportError(
                    "The 'psycopg' library is required for PostgresExecutor. "
                    "Install it with 'pip install \"psycopg[binary]\"'."
                )
            self._psycopg = psycopg
        return self._psycopg

    def _open(self) -> Any:
        psycopg = self._get_psycopg()
        info = self.connection_info
        return psycopg.connect(**info) if isinstance(info, dict) else psycopg.connect(info)

    def is_driver_error(self, exc: Exception) -> bool:
        if super().is_driver_error(exc):
            return True
        return self._psycopg is not None and isinstance(exc, self._psycopg.Error)

    def _has_active_transaction(self) -> bool:
        return self._txn is not None

    def _fetch(self, conn: Any, compiled_query: CompiledQuery) -> QueryResult:
        psycopg = self._get_psycopg()
        with psycopg.RawCursor(conn, row_factory=psycopg.rows.dict_row) as cur:
            cur.execute(compiled_query.text, compiled_query.values)
            rows = cur.fetchall() if cur.description else []
            return QueryResult(rows=rows, command=cur.statusmessage, row_count=cur.rowcount)

    def execute(self, compiled_query: CompiledQuery, statement_kind: str | None = None) -> QueryResult:
        """
        Runs one statement. Inside a transaction it uses the transaction's connection; otherwise
        the borrowed connection, or a fresh one that is committed and closed right after.
        """
        def run() -> QueryResult:
            if self._txn is not None:
                return self._fetch(self._txn.conn, compiled_query)
            if self.connection is not None:
                return self._fetch(self.connection, compiled_query)

            conn = self._open()
            try:
                result = self._fetch(conn, compiled_query)
                if getattr(conn, "autocommit", False) is False:
                    conn.commit()
                return result
            finally:
                conn.close()

        return self._observe_query(compiled_query=compiled_query, statement_kind=statement_kind, run=run)

    # ==================================================
    # Transactions
    # ==================================================

    def begin(self, isolation_level: str | None = None) -> None:
        if self._txn is not None:
            raise RuntimeError("A transaction is already open on this executor.")
        if isolation_level is not None and isolation_level not in ISOLATION_LEVELS:
            raise ValueError(f"Unsupported isolation level: {isolation_level!r}")

        owned = self.connection is None
        conn = self._open() if owned else self.connection
        txn = _Transaction(conn=conn, owned=owned, autocommit_before=conn.autocommit)
        conn.autocommit = False
        self._txn = txn

        if isolation_level:
            with conn.cursor() as cur:
                cur.execute(f"SET TRANSACTION ISOLATION LEVEL {isolation_level}")
        logger.debug("transaction started (isolation level: %s)", isolation_level or "default")

    def _finish(self, outcome: str) -> None:
        txn = self._txn
        if txn is None:
            raise RuntimeError("No active transaction. Call begin() first.")
        self._txn = None
        try:
            if outcome == "commit":
                txn.conn.commit()
            else:
                txn.conn.rollback()
            txn.conn.autocommit = txn.autocommit_before
        finally:
            if txn.owned:
                txn.conn.close()
        logger.debug("transaction ended with %s", outcome)

    def commit(self) -> None:
        self._finish("commit")

    def rollback(self) -> None:
        self._finish("rollback")

    def close(self) -> None:
        """Rolls back a transaction left open. Borrowed connections stay open."""
        if self._txn is not None:
            self.rollback()
