from dotenv import load_dotenv
import os
from pgcompose import (
    ALL, Default, OrderBy, count, deletes, insert, raw, run, select, select_one, sql, update
)
from pgcompose.execution.postgres import PostgresExecutor
from pgcompose.query import Query
from pgcompose.results import transform_none

def execute_ddl(executor, fragment):
    run(Query(fragment=fragment, kind="ddl", transform=transform_none), executor)

def main():
    # Load environment variables from .env file
    load_dotenv()

    # Build connection string from environment variables
    db_host = os.getenv('DB_HOST', '127.0.0.1')
    db_port = os.getenv('DB_PORT', '5433')
    db_name = os.getenv('DB_NAME', 'pgcompose_test')
    db_user = os.getenv('DB_USER', 'postgres')
    db_password = os.getenv('DB_PASSWORD', 'password')

    connection_string = f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
    executor = PostgresExecutor(connection_info=connection_string)

    print("Creating table 'sample_users'...")
    execute_ddl(executor, sql("DROP TABLE IF EXISTS ", "sample_users"))
    execute_ddl(executor, sql(
        "CREATE TABLE ", "sample_users", " (",
        raw("id serial PRIMARY KEY, name text NOT NULL, age integer, created_at timestamptz DEFAULT now()"),
        ")",
    ))

    print("Inserting sample data...")
    users = run(insert("sample_users", [
        {"name": "Alice", "age": 30},
        {"name": "Bob", "age": 25, "created_at": Default},
        {"name": "Charlie", "age": 35},
    ]), executor)
    print(f"Inserted {len(users)} users")

    print("Users ordered by age:")
    for user in run(select("sample_users", ALL, columns=["name", "age"], order=OrderBy("age")), executor):
        print(f"  {user['name']} ({user['age']})")

    bob = run(update("sample_users", {"age": 26}, {"name": "Bob"}), executor)
    print(f"Updated: {bob}")

    print(f"Users over 28: {run(count('sample_users', sql('age > ', 28)), executor)}")

    run(deletes("sample_users", {"name": "Charlie"}), executor)
    print(f"After delete, first user: {run(select_one('sample_users', ALL, order=OrderBy('id')), executor)}")

    execute_ddl(executor, sql("DROP TABLE ", "sample_users"))
    print("Table dropped.")

if __name__ == "__main__":
    main()
