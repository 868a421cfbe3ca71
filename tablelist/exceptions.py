class TableListError(Exception):
    """Base exception class for the table list reporter."""
    pass


class ConfigurationError(TableListError):
    """Raised when a required setting is missing, empty or invalid."""

    def __init__(self, message: str, variable: str = None):
        super().__init__(message)
        self.variable = variable


class DriverResolutionError(TableListError):
    """Raised when no registered driver claims a connection URL."""

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class DatabaseConnectionError(TableListError):
    """Raised when a driver accepted the URL but the connection attempt failed."""

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class StatementError(TableListError):
    """Raised when a statement cannot be created on an open connection."""
    pass


class QueryExecutionError(TableListError):
    """Raised when the query fails to execute or while its rows are fetched."""

    def __init__(self, message: str, query: str = None):
        super().__init__(message)
        self.query = query
