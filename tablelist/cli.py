"""Command-line interface for tablelist."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from pydantic import ValidationError

from .config import CONFIG_TEMPLATE, TableListConfig, load_config
from .drivers import default_registry
from .exceptions import ConfigurationError, TableListError
from .logger import set_level, setup_logging
from .reporter import run_report

logger = logging.getLogger(__name__)

LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False)


def _fail(error: Exception) -> None:
    """Report a fatal error on stderr and exit with status 1."""
    logger.error(f"{type(error).__name__}: {error}", exc_info=error.__cause__ is not None)
    click.echo(f"Error: {error}", err=True)
    if error.__cause__ is not None:
        click.echo(f"Caused by: {error.__cause__}", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a YAML configuration file",
)
@click.option("--log-level", type=LOG_LEVELS, default=None, help="Logging level (default WARNING)")
@click.option("--verbose", "-v", is_flag=True, help="Shortcut for --log-level DEBUG")
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], log_level: Optional[str], verbose: bool) -> None:
    """tablelist: print the tables visible to a database account."""
    ctx.ensure_object(dict)

    # Skip config loading for commands that don't need it
    if ctx.invoked_subcommand == "config-template":
        return

    try:
        config_obj = load_config(config)
    except (ConfigurationError, ValidationError, yaml.YAMLError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)
    ctx.obj["config"] = config_obj

    setup_logging()
    set_level("DEBUG" if verbose else log_level)

    if ctx.invoked_subcommand is None:
        ctx.invoke(report)


@cli.command()
@click.option(
    "--show-secrets",
    is_flag=True,
    default=False,
    help="Echo secret environment variables (the password) in plain text",
)
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    default=None,
    help="Connection timeout in seconds (default: wait indefinitely)",
)
@click.pass_context
def report(ctx: click.Context, show_secrets: bool, timeout: Optional[int]) -> None:
    """List every table as schema, name and type."""
    config: TableListConfig = ctx.obj["config"]

    try:
        run_report(
            config=config,
            redact_secrets=False if show_secrets else None,
            timeout_seconds=timeout,
        )
    except TableListError as e:
        _fail(e)


@cli.command()
@click.pass_context
def drivers(ctx: click.Context) -> None:
    """List the URL schemes a driver is registered for."""
    config: TableListConfig = ctx.obj["config"]

    try:
        registry = default_registry(config.drivers)
    except TableListError as e:
        _fail(e)

    for scheme in registry.schemes():
        click.echo(scheme)


@cli.command("config-template")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output file for configuration template",
)
def config_template(output: Optional[Path]) -> None:
    """Generate a configuration template file."""
    if output:
        output.write_text(CONFIG_TEMPLATE.strip() + "\n", encoding="utf-8")
        click.echo(f"Configuration template written to {output}")
    else:
        click.echo(CONFIG_TEMPLATE.strip())


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
