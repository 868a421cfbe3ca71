import logging
import os
from typing import Optional

from .config import LoggingConfig, get_config


def _logging_config() -> LoggingConfig:
    try:
        return get_config().logging
    except RuntimeError:
        # configuration not loaded yet
        return LoggingConfig()


def setup_logging(name: str = "tablelist") -> logging.Logger:
    """Attach the stderr handler, and the file handler when enabled, once per logger.

    Level, format and file handler come from the loaded configuration, or from
    the ``LoggingConfig`` defaults before any configuration is loaded.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    cfg = _logging_config()
    logger.setLevel(getattr(logging, cfg.level))
    formatter = logging.Formatter(cfg.format)

    # stdout is reserved for the report
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    if cfg.file_handler.enabled:
        os.makedirs(cfg.file_handler.directory, exist_ok=True)
        fh = logging.FileHandler(os.path.join(cfg.file_handler.directory, f"{name.lower()}.log"))
        fh.setFormatter(formatter)
        logger.addHandler(fh)
    return logger


def set_level(level: Optional[str], name: str = "tablelist") -> None:
    """Override the level of an already configured logger."""
    if not level:
        return
    logger = setup_logging(name)
    logger.setLevel(getattr(logging, level.upper()))


def reset_logging(name: str = "tablelist") -> None:
    """Detach and close every handler of the named logger."""
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
