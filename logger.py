# logger.py
import logging
from pathlib import Path
from typing import Literal, Optional

from config import CONFIG_MODEL

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOGGER_NAME = "market_sim"

LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    file_mode: Literal["w", "a"] = "w",
    console: bool = False,
) -> logging.Logger:
    """
    Install file (and optional console) handlers on the root logger.

    Calling this again (e.g. after the CLI resolved a different config file)
    replaces the previously installed handlers instead of stacking new ones.

    Args:
        level: Logging level (defaults to CONFIG_MODEL.logging_level)
        log_file: Log file path (defaults to CONFIG_MODEL.log_file)
        log_format: Log message format (defaults to CONFIG_MODEL.log_format)
        file_mode: 'w' truncates the log of the previous run, 'a' appends
        console: Also mirror records to stderr

    Returns:
        The simulation logger, which propagates to the root handlers
    """
    config_level = level or CONFIG_MODEL.logging_level
    config_file = log_file or CONFIG_MODEL.log_file
    config_format = log_format or CONFIG_MODEL.log_format

    numeric_level = LEVEL_MAP.get(config_level.upper(), logging.DEBUG)

    Path(config_file).parent.mkdir(parents=True, exist_ok=True)
    handlers: list[logging.Handler] = [
        logging.FileHandler(config_file, mode=file_mode, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=numeric_level,
        format=config_format,
        handlers=handlers,
        force=True,
    )

    return logging.getLogger(LOGGER_NAME)


def log(message: str, level: LogLevel = "DEBUG") -> None:
    """Emit ``message`` on the simulation logger; unknown levels fall back to DEBUG."""
    match level.upper():
        case "INFO":
            sim_logger.info(message)
        case "WARNING":
            sim_logger.warning(message)
        case "ERROR":
            sim_logger.error(message)
        case "CRITICAL":
            sim_logger.critical(message)
        case _:
            sim_logger.debug(message)


# Records propagate to the root handlers installed by setup_logger.
sim_logger = logging.getLogger(LOGGER_NAME)
setup_logger()
