"""Logging configuration for palfix."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from tqdm import tqdm

from .exceptions import FileSystemError
from .utils import ensure_dir_exists

DEFAULT_LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class TqdmLoggingHandler(logging.StreamHandler):
    """Console handler that prints above an active tqdm bar instead of through it."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
            self.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


def setup_logging(
    log_level: int = logging.INFO,
    log_dir: str = "logs",
    log_file: Optional[str] = "palfix.log",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3
) -> None:
    """
    Configures the root logger for a palfix run.

    Console output goes to stdout through tqdm so batch progress stays on one
    line. With a log_file, a rotating file under log_dir receives the same
    records; with None, only the console is used. Calling it again replaces
    the handlers installed by the previous call.

    Args:
        log_level: The minimum logging level (e.g., logging.INFO, logging.DEBUG).
        log_dir: Directory for the log file.
        log_file: Name of the log file, or None for console-only logging.
        log_format: The format string for log messages.
        date_format: The format string for timestamps in logs.
        max_bytes: Maximum size of a log file before rotation.
        backup_count: Number of rotated log files to keep.
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(log_level)
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console = TqdmLoggingHandler(sys.stdout)
    console.setFormatter(formatter)
    console.setLevel(log_level)
    root.addHandler(console)

    if log_file:
        log_path = os.path.join(log_dir, log_file)
        try:
            ensure_dir_exists(log_dir)
            file_handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count,
                                               encoding='utf-8')
        except (FileSystemError, OSError) as e:
            root.error(f"Failed to set up file logging at {log_path}: {e}")
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            root.debug(f"Logging to {log_path}")

    # ffmpeg-python and PyYAML stay quiet unless something goes wrong.
    logging.getLogger("ffmpeg").setLevel(logging.WARNING)
    logging.getLogger("yaml").setLevel(logging.WARNING)
