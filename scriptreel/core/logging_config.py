"""Loguru sinks for the CLI and API, with run-scoped context."""

import sys
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[run_id]}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[run_id]} | {name}:{function}:{line} | {message}"

# Records logged outside a pipeline run
DEFAULT_EXTRA = {"run_id": "-"}


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    json_logs: bool = False,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Replace loguru's sinks with a colored stderr sink and an optional file sink.

    Args:
        level: Minimum level for both sinks
        log_file: Rotating log file (no file sink when None)
        json_logs: Write the file sink as one JSON record per line
        rotation: Size at which the log file rotates
        retention: How long rotated files are kept
    """
    logger.remove()
    logger.configure(extra=DEFAULT_EXTRA)
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=json_logs,
        )


def get_logger(name: str, **context: Any) -> Any:
    """
    Get a logger bound to a component name and optional context.

    Args:
        name: Component name (typically __name__)
        **context: Extra fields carried on every record (run_id, script_title, stage)

    Returns:
        Bound loguru logger
    """
    return logger.bind(component=name, **context)


def configure_from_settings(settings: Any) -> None:
    """Apply log level, log file and JSON output from application settings."""
    setup_logging(level=settings.log_level, log_file=settings.log_file, json_logs=settings.log_json)
