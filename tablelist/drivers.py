"""Database drivers and the registry resolving a connection URL to one of them."""

import importlib
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError
from sqlalchemy.pool import NullPool

from .exceptions import ConfigurationError, DriverResolutionError

logger = logging.getLogger(__name__)

JDBC_PREFIX = "jdbc:"


@dataclass(frozen=True)
class Credentials:
    """Username and password handed to a driver when connecting."""
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='********')"


@dataclass
class DriverOptions:
    """Per-run options a driver factory may honour."""
    timeout_seconds: Optional[int] = None


def strip_jdbc_prefix(url: str) -> str:
    if url[:len(JDBC_PREFIX)].lower() == JDBC_PREFIX:
        return url[len(JDBC_PREFIX):]
    return url


def url_scheme(url: str) -> Optional[str]:
    """Return the lookup scheme of a connection URL.

    ``jdbc:postgresql://h/db`` and ``postgresql+psycopg2://h/db`` both give
    ``postgresql``. None when the URL carries no scheme.
    """
    rest = strip_jdbc_prefix(url.strip())
    scheme, sep, _ = rest.partition(":")
    if not sep or not scheme:
        return None
    return scheme.split("+", 1)[0].lower()


def mask_url(url: str) -> str:
    """Render a URL for logs with any embedded password hidden."""
    try:
        return make_url(strip_jdbc_prefix(url)).render_as_string(hide_password=True)
    except (ArgumentError, ValueError):
        return url


def _is_true(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _parse_int(option: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise DriverResolutionError(f'Invalid value for URL option "{option}": "{value}".') from None


def _timeout(argument: str, seconds: int) -> Dict[str, Any]:
    # 0 means "wait forever" in JDBC, which is also the DB-API default
    return {argument: seconds} if seconds > 0 else {}


def _translate_option(backend: str, option: str, value: str) -> Optional[Dict[str, Any]]:
    key = option.lower()
    if backend == "postgresql":
        if key == "sslmode":
            return {"sslmode": value}
        if key == "ssl":
            return {"sslmode": "require" if _is_true(value) else "disable"}
        if key in ("connecttimeout", "logintimeout"):
            return _timeout("connect_timeout", _parse_int(option, value))
    elif backend in ("mysql", "mariadb"):
        if key == "usessl":
            # encrypted but unverified, like Connector/J without verifyServerCertificate
            return {"ssl": {"check_hostname": False}} if _is_true(value) else {"ssl_disabled": True}
        if key == "connecttimeout":
            # milliseconds
            return _timeout("connect_timeout", math.ceil(_parse_int(option, value) / 1000))
    elif backend == "mssql":
        if key == "logintimeout":
            return _timeout("timeout", _parse_int(option, value))
    return None


def translate_url_options(backend: str, query: Mapping[str, Union[str, Sequence[str]]]) -> Dict[str, Any]:
    """Turn the query options of a JDBC URL into DB-API ``connect()`` keywords.

    Only SSL and timeout options are understood. Anything else, credentials
    included, is dropped with a warning. A repeated option keeps its last value.
    """
    connect_args: Dict[str, Any] = {}
    for option, value in query.items():
        if not isinstance(value, str):
            value = value[-1]
        translated = _translate_option(backend, option, value)
        if translated is None:
            logger.warning(f"Ignoring unsupported URL option {option!r} for {backend}")
            continue
        connect_args.update(translated)
    return connect_args


class SQLAlchemyDriver:
    """Driver backed by a SQLAlchemy dialect, handing out raw DB-API connections."""

    # connect() keyword each DB-API takes for a login timeout
    TIMEOUT_ARGUMENTS = {
        "postgresql": "connect_timeout",
        "mysql": "connect_timeout",
        "mariadb": "connect_timeout",
        "sqlite": "timeout",
        "mssql": "timeout",
    }

    CREDENTIAL_FREE_BACKENDS = frozenset({"sqlite"})

    # DB-API used when the URL names none; SQLAlchemy would otherwise pick mysqlclient
    DEFAULT_DBAPIS = {
        "mysql": "pymysql",
        "mariadb": "pymysql",
    }

    def __init__(self, url: str, options: Optional[DriverOptions] = None):
        options = options or DriverOptions()
        jdbc = strip_jdbc_prefix(url) != url
        try:
            parsed = make_url(strip_jdbc_prefix(url))
        except ArgumentError as e:
            raise DriverResolutionError(
                f'Could not find any suitable driver using URL: "{url}".', url=url
            ) from e
        if parsed.drivername.split("+", 1)[0] == "postgres":
            parsed = parsed.set(drivername=parsed.drivername.replace("postgres", "postgresql", 1))
        backend = parsed.get_backend_name()
        if "+" not in parsed.drivername and backend in self.DEFAULT_DBAPIS:
            parsed = parsed.set(drivername=f"{backend}+{self.DEFAULT_DBAPIS[backend]}")

        connect_args: Dict[str, Any] = {}
        if jdbc and parsed.query:
            connect_args.update(translate_url_options(backend, parsed.query))
            parsed = parsed.set(query={})

        self.url = parsed
        self.name = parsed.drivername

        timeout_arg = self.TIMEOUT_ARGUMENTS.get(backend)
        if options.timeout_seconds is not None and timeout_arg:
            connect_args[timeout_arg] = options.timeout_seconds
        self._connect_args = connect_args
        self._engine = None

        # Loading the dialect imports its DB-API module.
        try:
            parsed.get_dialect().import_dbapi()
        except (NoSuchModuleError, ImportError) as e:
            raise DriverResolutionError(
                f'Could not find any suitable driver using URL: "{url}".', url=url
            ) from e

    def connect(self, credentials: Credentials):
        """Open one DB-API connection using the given credentials."""
        url: URL = self.url
        # SQLite has no accounts and rejects URLs carrying them
        if url.get_backend_name() not in self.CREDENTIAL_FREE_BACKENDS:
            url = url.set(username=credentials.username, password=credentials.password)

        self._engine = create_engine(url, poolclass=NullPool, connect_args=self._connect_args)
        logger.debug(f"Connecting with driver {self.name} to {url.render_as_string(hide_password=True)}")
        return self._engine.raw_connection()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


DriverFactory = Callable[[str, DriverOptions], Any]

DEFAULT_SCHEMES = ("postgresql", "postgres", "mysql", "mariadb", "mssql", "oracle", "sqlite")


class DriverRegistry:
    """Explicit mapping from URL scheme to driver factory."""

    def __init__(self, factories: Optional[Dict[str, DriverFactory]] = None):
        self._factories: Dict[str, DriverFactory] = {}
        for scheme, factory in (factories or {}).items():
            self.register(scheme, factory)

    def register(self, scheme: str, factory: DriverFactory) -> None:
        self._factories[scheme.lower()] = factory

    def unregister(self, scheme: str) -> None:
        self._factories.pop(scheme.lower(), None)

    def schemes(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, scheme: str) -> bool:
        return scheme.lower() in self._factories

    def resolve(self, url: str, options: Optional[DriverOptions] = None):
        """Return a driver for the URL or raise DriverResolutionError."""
        scheme = url_scheme(url)
        factory = self._factories.get(scheme) if scheme else None
        if factory is None:
            raise DriverResolutionError(
                f'Could not find any suitable driver using URL: "{url}".', url=url
            )
        try:
            driver = factory(url, options or DriverOptions())
        except DriverResolutionError:
            raise
        except Exception as e:
            raise DriverResolutionError(
                f'Could not find any suitable driver using URL: "{url}".', url=url
            ) from e
        logger.debug(f"Resolved scheme {scheme!r} to driver {getattr(driver, 'name', type(driver).__name__)}")
        return driver


def import_factory(path: str) -> DriverFactory:
    """Import a driver factory from a ``module:callable`` path."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f'Invalid driver factory path: "{path}". Expected "module:callable".')
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f'Could not import driver factory: "{path}".') from e
    if not callable(factory):
        raise ConfigurationError(f'Driver factory is not callable: "{path}".')
    return factory


def default_registry(extra: Optional[Dict[str, str]] = None) -> DriverRegistry:
    """Build a fresh registry with the SQLAlchemy schemes and any configured extras."""
    registry = DriverRegistry({scheme: SQLAlchemyDriver for scheme in DEFAULT_SCHEMES})
    for scheme, path in (extra or {}).items():
        registry.register(scheme, import_factory(path))
    return registry
