import os
import shutil
import subprocess
import sys

UNIT_TESTS = "pgcompose/tests"
INTEGRATION_TESTS = "tests"
BUILD_LEFTOVERS = (".pytest_cache", "build", "dist", "pgcompose.egg-info")


def _pytest(*paths: str) -> None:
    sys.exit(subprocess.call([sys.executable, "-m", "pytest", *paths]))


def run_unit_tests():
    """pytest over the compiler, builder and transform tests; no database needed."""
    _pytest(UNIT_TESTS)


def run_integration_tests():
    """pytest over tests/, which talks to the PostgreSQL started by setup-tests."""
    _pytest(INTEGRATION_TESTS)


def run_all_tests():
    _pytest(UNIT_TESTS, INTEGRATION_TESTS)


def clean_project():
    """Deletes pytest caches, build output and every __pycache__ under the working directory."""
    targets = [path for path in BUILD_LEFTOVERS if os.path.isdir(path)]
    for root, dirs, _ in os.walk("."):
        targets.extend(os.path.join(root, name) for name in dirs if name == "__pycache__")

    for path in targets:
        shutil.rmtree(path, ignore_errors=True)
        print(f"removed {path}")


def setup_tests():
    """Brings up the docker-compose PostgreSQL service the integration tests connect to."""
    code = subprocess.call(["docker-compose", "up", "-d", "postgres"])
    if code != 0:
        sys.exit(code)
    print("PostgreSQL is starting; integration tests read DATABASE_URL (see tests/conftest.py).")
