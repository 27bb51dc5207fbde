# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

# Third-Party Imports
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# ========================== INITIALIZATION & CONFIGURATION ========================== #

LOGGER_NAME = "decontam_eval"
LOG_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(module)s.%(funcName)s(): %(message)s"
LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_THEME = Theme({
    "logging.time": "bold white",
    "logging.level.debug": "dim cyan",
    "logging.level.info": "bold white",
    "logging.level.warning": "bold yellow",
    "logging.level.error": "bold red",
    "logging.level.critical": "reverse bold bright_white on red",
})

# ===================================== HANDLERS ===================================== #

def _file_handler(
    log_file_path: Path,
    level: int,
    max_file_size: int,
    backup_count: int
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=log_file_path,
        maxBytes=max_file_size,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT, datefmt=LOG_TIME_FORMAT))
    return handler


def _console_handler(level: int, console: Optional[Console] = None) -> RichHandler:
    handler = RichHandler(
        console=console or Console(theme=CONSOLE_THEME, stderr=True),
        level=level,
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        log_time_format="[%X]",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler

# ==================================== FUNCTIONS ===================================== #

def setup_logging(
    log_dir_path: Union[str, Path],
    log_filename: Optional[str] = None,
    max_file_size: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    console: Optional[Console] = None
) -> logging.Logger:
    """
    Configure the package logger for one evaluation run.

    The full DEBUG trail (per-method partition sizes, undecided variants,
    tracebacks of failed runs) goes to a rotating file under `log_dir_path`;
    the console only shows `console_level` and above. Handlers installed by a
    previous call are closed and replaced.

    Args:
        log_dir_path:  Directory for log files (created if missing).
        log_filename:  File name; defaults to a timestamp.
        max_file_size: Rotate the file after this many bytes.
        backup_count:  Number of rotated files to keep.
        console_level: Minimum level printed to the console.
        file_level:    Minimum level written to the file.
        console:       Rich console to print to (a themed stderr console by
                       default).

    Returns:
        The `decontam_eval` logger.
    """
    log_dir_path = Path(log_dir_path)
    log_dir_path.mkdir(parents=True, exist_ok=True)
    log_file_path = log_dir_path / (
        log_filename or datetime.now().strftime("%Y-%m-%d_%H%M%S.log")
    )

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(min(console_level, file_level))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_file_handler(log_file_path, file_level, max_file_size, backup_count))
    logger.addHandler(_console_handler(console_level, console))

    logger.info(f"Logging to {log_file_path}")
    return logger
