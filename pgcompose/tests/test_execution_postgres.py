import pytest
from unittest.mock import MagicMock, patch
from pgcompose.execution.postgres import PostgresExecutor
from pgcompose.compiler.compiled_query import CompiledQuery
from pgcompose.results import QueryResult

@pytest.fixture
def mock_psycopg():
    with patch("pgcompose.execution.postgres.PostgresExecutor._get_psycopg") as mock:
        mock_module = MagicMock()
        mock.return_value = mock_module
        yield mock_module

def _cursor(mock_psycopg):
    return mock_psycopg.RawCursor.return_value.__enter__.return_value

def test_postgres_executor_execute_returns_dict_rows(mock_psycopg):
    executor = PostgresExecutor(connection_info="dsn")
    query = CompiledQuery(text="SELECT $1 AS result", values=[1])

    mock_conn = mock_psycopg.connect.return_value
    mock_conn.autocommit = False
    mock_cur = _cursor(mock_psycopg)
    mock_cur.description = [("result",)]
    mock_cur.fetchall.return_value = [{"result": 1}]
    mock_cur.statusmessage = "SELECT 1"
    mock_cur.rowcount = 1

    result = executor.execute(query)

    assert result == QueryResult(rows=[{"result": 1}], command="SELECT 1", row_count=1)
    mock_psycopg.connect.assert_called_once_with("dsn")
    mock_psycopg.RawCursor.assert_called_once_with(mock_conn, row_factory=mock_psycopg.rows.dict_row)
    mock_cur.execute.assert_called_once_with("SELECT $1 AS result", [1])
    mock_conn.commit.assert_called_once()
    mock_conn.close.assert_called_once()

def test_postgres_executor_statement_without_rows(mock_psycopg):
    executor = PostgresExecutor(connection_info={"host": "localhost", "dbname": "app"})
    query = CompiledQuery(text='TRUNCATE "users"', values=[])

    mock_cur = _cursor(mock_psycopg)
    mock_cur.description = None

    result = executor.execute(query)

    assert result.rows == []
    mock_psycopg.connect.assert_called_once_with(host="localhost", dbname="app")
    mock_cur.fetchall.assert_not_called()

def test_postgres_executor_borrowed_connection_is_not_closed(mock_psycopg):
    conn = MagicMock()
    executor = PostgresExecutor(connection=conn)
    _cursor(mock_psycopg).description = None

    executor.execute(CompiledQuery(text="SELECT 1", values=[]))

    mock_psycopg.connect.assert_not_called()
    conn.close.assert_not_called()
    conn.commit.assert_not_called()

def test_postgres_executor_transaction_uses_one_connection(mock_psycopg):
    executor = PostgresExecutor(connection_info="dsn")
    mock_conn = mock_psycopg.connect.return_value
    mock_conn.autocommit = True
    begin_cur = mock_conn.cursor.return_value.__enter__.return_value
    _cursor(mock_psycopg).description = None

    executor.begin("SERIALIZABLE")
    executor.execute(CompiledQuery(text="SELECT 1", values=[]))
    executor.execute(CompiledQuery(text="SELECT 2", values=[]))
    executor.commit()

    mock_psycopg.connect.assert_called_once_with("dsn")
    begin_cur.execute.assert_called_once_with("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE")
    mock_conn.commit.assert_called_once()
    mock_conn.close.assert_called_once()
    assert mock_conn.autocommit is True

def test_postgres_executor_rejects_unknown_isolation_level(mock_psycopg):
    executor = PostgresExecutor(connection_info="dsn")
    with pytest.raises(ValueError):
        executor.begin("CHAOTIC")

def test_postgres_executor_commit_without_begin(mock_psycopg):
    executor = PostgresExecutor(connection_info="dsn")
    with pytest.raises(RuntimeError, match="No active transaction"):
        executor.commit()

def test_postgres_executor_close_rolls_back_open_transaction(mock_psycopg):
    executor = PostgresExecutor(connection_info="dsn")
    mock_conn = mock_psycopg.connect.return_value

    with executor:
        executor.begin()

    mock_conn.rollback.assert_called_once()
    mock_conn.close.assert_called_once()

def test_postgres_executor_requires_connection():
    with pytest.raises(ValueError):
        PostgresExecutor()

def test_postgres_executor_import_error():
    executor = PostgresExecutor(connection_info="dsn")

    with patch('builtins.__import__') as mock_import:
        def side_effect(name, *args, **kwargs):
            if name == 'psycopg':
                raise ImportError("psycopg not found")
            return MagicMock()

        mock_import.side_effect = side_effect

        with pytest.raises(ImportError) as excinfo:
            executor._get_psycopg()
        assert "The 'psycopg' library is required" in str(excinfo.value)
