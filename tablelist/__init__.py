"""tablelist: list the tables a database account can see."""

__version__ = "1.0.0"

from .exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    DriverResolutionError,
    QueryExecutionError,
    StatementError,
    TableListError,
)
from .drivers import DriverRegistry, SQLAlchemyDriver, default_registry
from .reporter import TableListReporter, TableRow, run_report

__all__ = [
    "ConfigurationError",
    "DatabaseConnectionError",
    "DriverRegistry",
    "DriverResolutionError",
    "QueryExecutionError",
    "SQLAlchemyDriver",
    "StatementError",
    "TableListError",
    "TableListReporter",
    "TableRow",
    "default_registry",
    "run_report",
]
