"""Pytest configuration and shared fixtures for tablelist tests."""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from tablelist.config import reset_config
from tablelist.drivers import Credentials, DriverOptions, DriverRegistry, SQLAlchemyDriver
from tablelist.logger import reset_logging


@pytest.fixture(autouse=True)
def reset_global_state():
    """Each test starts without a global configuration or logging handlers."""
    reset_config()
    reset_logging()
    yield
    reset_config()
    reset_logging()


class FakeCursor:
    """DB-API cursor returning canned rows, recording what happens to it."""

    def __init__(self, events: List[str], rows: Sequence[tuple], fail_on: Optional[str] = None):
        self.events = events
        self.rows = list(rows)
        self.fail_on = fail_on
        self.executed: List[str] = []
        self.fetches = 0

    def execute(self, query):
        self.events.append("execute")
        if self.fail_on == "execute":
            raise RuntimeError("syntax error at or near INFORMATION_SCHEMA")
        self.executed.append(query)

    def fetchone(self):
        self.fetches += 1
        if self.fail_on == "fetch" and self.fetches > 1:
            raise RuntimeError("connection reset while fetching")
        if not self.rows:
            return None
        return self.rows.pop(0)

    def close(self):
        self.events.append("close cursor")


class FakeConnection:
    def __init__(self, events: List[str], cursor: FakeCursor, fail_on: Optional[str] = None):
        self.events = events
        self._cursor = cursor
        self.fail_on = fail_on

    def cursor(self):
        if self.fail_on == "cursor":
            raise RuntimeError("too many open cursors")
        self.events.append("open cursor")
        return self._cursor

    def close(self):
        self.events.append("close connection")


class FakeDriver:
    name = "fake"

    def __init__(self, url: str, options: DriverOptions, events: List[str], rows, fail_on: Optional[str]):
        self.url = url
        self.options = options
        self.events = events
        self.rows = rows
        self.fail_on = fail_on
        self.credentials: Optional[Credentials] = None
        self.cursor: Optional[FakeCursor] = None

    def connect(self, credentials: Credentials):
        self.credentials = credentials
        if self.fail_on == "connect":
            raise RuntimeError("password authentication failed")
        self.events.append("connect")
        self.cursor = FakeCursor(self.events, self.rows, self.fail_on)
        return FakeConnection(self.events, self.cursor, self.fail_on)

    def dispose(self):
        self.events.append("dispose driver")


@pytest.fixture
def fake_database():
    """Build a registry whose ``test`` scheme resolves to a recording fake driver.

    Returns a callable taking the rows and an optional failure point
    (``connect``, ``cursor``, ``execute`` or ``fetch``); the callable returns
    ``(registry, events, drivers)``.
    """
    def _build(rows: Sequence[tuple] = (), fail_on: Optional[str] = None) -> Tuple[DriverRegistry, List[str], List[FakeDriver]]:
        events: List[str] = []
        drivers: List[FakeDriver] = []

        def factory(url, options):
            driver = FakeDriver(url, options, events, rows, fail_on)
            drivers.append(driver)
            return driver

        return DriverRegistry({"test": factory}), events, drivers

    return _build


class InformationSchemaSQLiteDriver(SQLAlchemyDriver):
    """SQLite driver exposing an attached INFORMATION_SCHEMA database with a TABLES table."""

    def __init__(self, url: str, options: DriverOptions, tables: Sequence[tuple]):
        super().__init__(url, options)
        self.tables = list(tables)

    def connect(self, credentials: Credentials):
        connection = super().connect(credentials)
        cursor = connection.cursor()
        cursor.execute("ATTACH DATABASE ':memory:' AS INFORMATION_SCHEMA")
        cursor.execute(
            "CREATE TABLE INFORMATION_SCHEMA.TABLES "
            "(TABLE_SCHEMA TEXT, TABLE_NAME TEXT, TABLE_TYPE TEXT)"
        )
        cursor.executemany("INSERT INTO INFORMATION_SCHEMA.TABLES VALUES (?, ?, ?)", self.tables)
        cursor.close()
        return connection


@pytest.fixture
def sqlite_registry() -> Callable[[Sequence[tuple]], DriverRegistry]:
    """Registry whose ``sqlite`` scheme serves the given information schema rows."""
    def _build(tables: Sequence[tuple]) -> DriverRegistry:
        return DriverRegistry({
            "sqlite": lambda url, options: InformationSchemaSQLiteDriver(url, options, tables),
        })

    return _build


@pytest.fixture
def environ() -> Dict[str, str]:
    """A complete set of connection environment variables for the fake driver."""
    return {
        "JDBC_URL": "jdbc:test://local/db",
        "JDBC_USER": "alice",
        "JDBC_PASSWORD": "secret",
    }


@pytest.fixture
def output() -> List[str]:
    """Collects everything a reporter echoes."""
    return []
