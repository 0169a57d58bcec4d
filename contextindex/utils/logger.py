"""
Logging setup for contextindex.

Console output is human readable. When file logging is on, every record
goes to a daily rotating file and warnings and above are also written to
a separate errors file, both serialized to JSON so the ``extra`` context
attached by callers survives.
"""

import sys
from pathlib import Path

from loguru import logger

from contextindex.config import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} - {message}"


def setup_logging(
    level: str = "INFO",
    log_to_file: bool = True,
    log_dir: str = "logs",
    file_rotation: str = "10 MB",
    file_retention: str = "7 days",
    compression: str = "zip",
    serialize: bool = True,
) -> None:
    """Replace any existing sinks with the contextindex console and file sinks."""
    logger.remove()
    logger.configure(extra={"component": "contextindex"})

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if not log_to_file:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    file_options = {
        "format": FILE_FORMAT,
        "rotation": file_rotation,
        "retention": file_retention,
        "compression": compression,
        "serialize": serialize,
        "enqueue": True,
    }
    logger.add(log_path / "contextindex_{time:YYYY-MM-DD}.log", level=level, **file_options)
    logger.add(log_path / "contextindex_errors.log", level="WARNING", **file_options)


def setup_logging_from_config(config: LoggingConfig) -> None:
    setup_logging(
        level=config.level,
        log_to_file=config.log_to_file,
        log_dir=config.log_dir,
        file_rotation=config.file_rotation,
        file_retention=config.file_retention,
        compression=config.compression,
        serialize=config.serialize,
    )


def get_logger(name: str):
    """Get a logger bound to a module name."""
    return logger.bind(component=name)
