"""Run the table listing query and print the fixed-width report."""

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

import click

from .config import ConnectionSettings, TableListConfig, load_connection_settings
from .drivers import Credentials, DriverOptions, DriverRegistry, default_registry, mask_url
from .exceptions import DatabaseConnectionError, QueryExecutionError, StatementError

logger = logging.getLogger(__name__)

SELECT_TABLE_INFO = (
    "SELECT T.TABLE_SCHEMA, T.TABLE_NAME, T.TABLE_TYPE "
    "FROM INFORMATION_SCHEMA.TABLES T ORDER BY 1 ASC, 2 ASC, 3 ASC"
)

COLUMNS_TABLE_SCHEMA = "TABLE_SCHEMA"
COLUMNS_TABLE_NAME = "TABLE_NAME"
COLUMNS_TABLE_TYPE = "TABLE_TYPE"

SCHEMA_WIDTH = 25
NAME_WIDTH = 50
TYPE_WIDTH = 25

LINE_FORMAT = f"| %{SCHEMA_WIDTH}s | %{NAME_WIDTH}s | %{TYPE_WIDTH}s |"
LINE_WIDTH = SCHEMA_WIDTH + NAME_WIDTH + TYPE_WIDTH + 10
SEPARATOR = "-" * LINE_WIDTH


class RunState(Enum):
    """Lifecycle of a single report run."""
    INIT = "init"
    CONFIG_LOADED = "config_loaded"
    DRIVER_RESOLVED = "driver_resolved"
    CONNECTED = "connected"
    STATEMENT_OPEN = "statement_open"
    QUERY_EXECUTING = "query_executing"
    ROW_STREAMING = "row_streaming"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class TableRow:
    """One row of the information schema listing."""
    schema: Optional[str]
    name: Optional[str]
    type: Optional[str]

    @classmethod
    def from_record(cls, record: Sequence[Any]) -> "TableRow":
        schema, name, table_type = record[0], record[1], record[2]
        return cls(
            schema=None if schema is None else str(schema),
            name=None if name is None else str(name),
            type=None if table_type is None else str(table_type),
        )


def format_line(schema: Any, name: Any, table_type: Any) -> str:
    """Right-align the three values in their columns. Longer values are not truncated."""
    return LINE_FORMAT % (schema, name, table_type)


HEADER = format_line(COLUMNS_TABLE_SCHEMA, COLUMNS_TABLE_NAME, COLUMNS_TABLE_TYPE)


def iter_rows(cursor) -> Iterator[TableRow]:
    """Lazily yield rows from an executed DB-API cursor, forward only."""
    while True:
        try:
            record = cursor.fetchone()
        except Exception as e:
            raise QueryExecutionError(
                f'Failed to execute query: "{SELECT_TABLE_INFO}".', query=SELECT_TABLE_INFO
            ) from e
        if record is None:
            return
        yield TableRow.from_record(record)


class TableListReporter:
    """Connects with the resolved driver, runs the listing query and prints the report.

    A reporter starts in ``INIT``. It moves to ``CONFIG_LOADED`` when built
    with connection settings or once ``load_settings`` has read them from the
    environment. Only then can it ``run``.
    """

    def __init__(
        self,
        settings: Optional[ConnectionSettings] = None,
        registry: Optional[DriverRegistry] = None,
        echo: Callable[[str], None] = click.echo,
        timeout_seconds: Optional[int] = None,
        config: Optional[TableListConfig] = None,
    ):
        self.config = config if config is not None else TableListConfig()
        self.settings = settings
        # built from the configured extras at run time when not given
        self.registry = registry
        self.echo = echo
        if timeout_seconds is None:
            timeout_seconds = self.config.connection.timeout_seconds
        self.timeout_seconds = timeout_seconds
        self.state = RunState.INIT
        self.rows_printed = 0
        if settings is not None:
            self._transition(RunState.CONFIG_LOADED)

    def _transition(self, state: RunState) -> None:
        logger.debug(f"Report run: {self.state.value} -> {state.value}")
        self.state = state

    def _release(self, what: str, close: Callable[[], Any]) -> Callable[..., bool]:
        """Build an exit callback that closes one resource without masking errors."""
        def _exit(exc_type, exc, tb) -> bool:
            try:
                close()
                logger.debug(f"Released {what}")
            except Exception as e:
                logger.warning(f"Failed to release {what}: {e}")
            return False
        return _exit

    def load_settings(
        self,
        environ: Optional[Mapping[str, str]] = None,
        redact_secrets: Optional[bool] = None,
    ) -> ConnectionSettings:
        """Read and echo the connection variables, stopping at the first missing one."""
        try:
            self.settings = load_connection_settings(
                environ, config=self.config, echo=self.echo, redact_secrets=redact_secrets
            )
        except BaseException:
            self._transition(RunState.FAILED)
            raise
        self._transition(RunState.CONFIG_LOADED)
        return self.settings

    def run(self) -> int:
        """Print the report and return the number of data rows.

        Resources are released innermost first whatever step fails.
        """
        if self.state is not RunState.CONFIG_LOADED:
            raise RuntimeError(f"Cannot run a report from state {self.state.value!r}")

        url = self.settings.url
        try:
            with ExitStack() as stack:
                registry = self.registry
                if registry is None:
                    registry = default_registry(self.config.drivers)
                driver = registry.resolve(url, DriverOptions(timeout_seconds=self.timeout_seconds))
                dispose = getattr(driver, "dispose", None)
                if dispose is not None:
                    stack.push(self._release("driver", dispose))
                self._transition(RunState.DRIVER_RESOLVED)

                credentials = Credentials(
                    username=self.settings.username,
                    password=self.settings.password.get_secret_value(),
                )
                try:
                    connection = driver.connect(credentials)
                except Exception as e:
                    raise DatabaseConnectionError(
                        f'Could not connect to the underlying database using URL: "{url}".', url=url
                    ) from e
                stack.push(self._release("connection", connection.close))
                self._transition(RunState.CONNECTED)
                logger.info(f"Connected to {mask_url(url)}")

                try:
                    cursor = connection.cursor()
                except Exception as e:
                    raise StatementError("Failed to create statement.") from e
                stack.push(self._release("statement", cursor.close))
                self._transition(RunState.STATEMENT_OPEN)

                self._transition(RunState.QUERY_EXECUTING)
                try:
                    cursor.execute(SELECT_TABLE_INFO)
                except Exception as e:
                    raise QueryExecutionError(
                        f'Failed to execute query: "{SELECT_TABLE_INFO}".', query=SELECT_TABLE_INFO
                    ) from e

                self._transition(RunState.ROW_STREAMING)
                self.echo(SEPARATOR)
                self.echo(HEADER)
                self.echo(SEPARATOR)
                for row in iter_rows(cursor):
                    self.echo(format_line(row.schema, row.name, row.type))
                    self.rows_printed += 1
                self.echo(SEPARATOR)

                self._transition(RunState.CLEANUP)
        except BaseException:
            self._transition(RunState.FAILED)
            raise

        self._transition(RunState.DONE)
        logger.info(f"Listed {self.rows_printed} tables")
        return self.rows_printed


def run_report(
    environ: Optional[Mapping[str, str]] = None,
    registry: Optional[DriverRegistry] = None,
    echo: Callable[[str], None] = click.echo,
    config: Optional[TableListConfig] = None,
    redact_secrets: Optional[bool] = None,
    timeout_seconds: Optional[int] = None,
) -> int:
    """Load the connection settings from the environment and print the report."""
    reporter = TableListReporter(registry=registry, echo=echo, timeout_seconds=timeout_seconds, config=config)
    reporter.load_settings(environ, redact_secrets=redact_secrets)
    return reporter.run()
