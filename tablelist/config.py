"""Configuration management using Pydantic for validation and YAML loading."""

import os
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Union

import click
import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError

URL_VARIABLE = "JDBC_URL"
USER_VARIABLE = "JDBC_USER"
PASSWORD_VARIABLE = "JDBC_PASSWORD"

REDACTED = "********"


class EnvironmentConfig(BaseModel):
    """Names of the environment variables holding the connection values."""
    url_variable: str = URL_VARIABLE
    user_variable: str = USER_VARIABLE
    password_variable: str = PASSWORD_VARIABLE


class ConnectionConfig(BaseModel):
    """Connection tuning."""
    timeout_seconds: Optional[int] = Field(default=None, gt=0)


class EchoConfig(BaseModel):
    """Diagnostic echo of the environment variables."""
    redact_secrets: bool = True


class FileHandlerConfig(BaseModel):
    """File handler logging configuration."""
    enabled: bool = False
    directory: str = "data/logs"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$", default="WARNING")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_handler: FileHandlerConfig = Field(default_factory=FileHandlerConfig)


class ConnectionSettings(BaseModel):
    """The validated connection triple read from the environment."""
    url: str
    username: str
    password: SecretStr

    @field_validator('url', 'username')
    @classmethod
    def validate_not_empty(cls, v):
        if not v:
            raise ValueError('must not be empty')
        return v

    @field_validator('password')
    @classmethod
    def validate_password_not_empty(cls, v):
        if not v.get_secret_value():
            raise ValueError('must not be empty')
        return v


class TableListConfig(BaseSettings):
    """Main table list reporter configuration."""
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    echo: EchoConfig = Field(default_factory=EchoConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    # scheme -> "module:callable" driver factory
    drivers: Dict[str, str] = Field(default_factory=dict)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "TABLELIST_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "TableListConfig":
        """Load configuration from YAML file with environment variable substitution."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping at the top level: {config_path}"
            )

        # Substitute environment variables
        config_data = cls._substitute_env_vars(config_data)

        return cls(**config_data)

    @staticmethod
    def _substitute_env_vars(data):
        """Recursively substitute environment variables in configuration data."""
        if isinstance(data, dict):
            return {key: TableListConfig._substitute_env_vars(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [TableListConfig._substitute_env_vars(item) for item in data]
        elif isinstance(data, str) and data.startswith('${') and data.endswith('}'):
            env_var = data[2:-1]
            return os.getenv(env_var, data)  # Return original if env var not found
        else:
            return data

    def secret_variables(self) -> frozenset:
        """Environment variable names whose values must not be echoed verbatim."""
        return frozenset({self.environment.password_variable})


def read_environment_variable(
    name: str,
    environ: Mapping[str, str],
    echo: Callable[[str], None] = click.echo,
    secret: bool = False,
) -> str:
    """Fetch one required variable, echoing it as ``NAME="value"``.

    The echo happens before validation so a missing variable is still
    reported on standard output. Secret values are masked unless ``secret``
    is False.
    """
    value = environ.get(name)
    shown = REDACTED if secret and value else value
    echo(f'{name}="{shown}"\n')

    if value is None or value == "":
        raise ConfigurationError(
            f'Could not find a non-empty environment variable named: "{name}".',
            variable=name,
        )
    return value


def load_connection_settings(
    environ: Optional[Mapping[str, str]] = None,
    config: Optional["TableListConfig"] = None,
    echo: Callable[[str], None] = click.echo,
    redact_secrets: Optional[bool] = None,
) -> ConnectionSettings:
    """Read URL, username and password from the environment, in that order.

    Stops at the first missing or empty variable.
    """
    if environ is None:
        environ = os.environ
    if config is None:
        config = TableListConfig()
    if redact_secrets is None:
        redact_secrets = config.echo.redact_secrets

    secrets = config.secret_variables() if redact_secrets else frozenset()
    names = config.environment
    values = [
        read_environment_variable(name, environ, echo=echo, secret=name in secrets)
        for name in (names.url_variable, names.user_variable, names.password_variable)
    ]
    return ConnectionSettings(url=values[0], username=values[1], password=values[2])


# Global configuration instance
_config: Optional[TableListConfig] = None


def get_config() -> TableListConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        raise RuntimeError("Configuration not loaded. Call load_config() first.")
    return _config


def load_config(config_path: Optional[Union[str, Path]] = None) -> TableListConfig:
    """Load and set the global configuration.

    Without a path only defaults and ``TABLELIST_*`` environment overrides apply.
    """
    global _config
    if config_path is None:
        _config = TableListConfig()
    else:
        _config = TableListConfig.from_yaml(config_path)
    return _config


def reset_config() -> None:
    """Forget the global configuration."""
    global _config
    _config = None


CONFIG_TEMPLATE = '''
# tablelist configuration template
# Copy this file to tablelist.yaml and pass it with --config

environment:
  url_variable: "JDBC_URL"
  user_variable: "JDBC_USER"
  password_variable: "JDBC_PASSWORD"

connection:
  timeout_seconds: 30  # omit to wait indefinitely

echo:
  redact_secrets: true  # false prints the password in plain text

drivers: {}
  # h2: "mypackage.drivers:H2Driver"

logging:
  level: "WARNING"
  format: "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
  file_handler:
    enabled: false
    directory: "data/logs"
'''
