"""Logging setup shared by every boss timer module."""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = 'boss_timer'

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
TEST_FORMAT = '%(levelname)s: %(message)s'


class FlushingStreamHandler(logging.StreamHandler):
    """Stream handler that flushes every record, so piped output is not held back."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def _handler(handler: logging.Handler, level: int, fmt: str, datefmt: Optional[str] = None) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def get_log_file(log_dir: Path, day: Optional[datetime] = None) -> Path:
    """Dated log file inside ``log_dir`` (one file per day)."""
    day = day or datetime.now()
    return Path(log_dir) / f"boss_timer_{day.strftime('%Y%m%d')}.log"


def setup_logging(log_dir: Optional[Path] = None, log_level: int = logging.INFO) -> logging.Logger:
    """
    Configure the ``boss_timer`` logger with a daily file and a stderr console.

    Calling it again replaces the previous handlers. Module loggers created
    before the call lose their stand-alone fallback handler and propagate to
    the configured ones.

    Args:
        log_dir: Directory for log files (defaults to data/logs next to src/)
        log_level: Level applied to the logger and both handlers

    Returns:
        The configured ``boss_timer`` logger
    """
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(log_level)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    for name, child in list(logging.root.manager.loggerDict.items()):
        if name.startswith(ROOT_LOGGER_NAME + '.') and isinstance(child, logging.Logger):
            child.handlers.clear()
            child.setLevel(logging.NOTSET)

    log_dir = Path(log_dir) if log_dir is not None else Path(__file__).parent.parent / "data" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = get_log_file(log_dir)

    app_logger.addHandler(_handler(logging.FileHandler(log_file, encoding='utf-8'),
                                   log_level, FILE_FORMAT, '%Y-%m-%d %H:%M:%S'))
    app_logger.addHandler(_handler(FlushingStreamHandler(sys.stderr), log_level, CONSOLE_FORMAT, '%H:%M:%S'))

    app_logger.info(f"Boss Respawn Timer logging to {log_file} (level {logging.getLevelName(log_level)})")
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """
    Logger for one module, named ``boss_timer.<name>``.

    Until setup_logging() runs (tests, library use) the module logger gets its
    own WARNING-level console handler.
    """
    logger_name = name if name.startswith(ROOT_LOGGER_NAME) else f'{ROOT_LOGGER_NAME}.{name}'
    module_logger = logging.getLogger(logger_name)

    if not module_logger.handlers and logging.getLogger(ROOT_LOGGER_NAME).level == logging.NOTSET:
        module_logger.addHandler(_handler(logging.StreamHandler(), logging.WARNING, TEST_FORMAT))
        module_logger.setLevel(logging.WARNING)

    return module_logger
