"""
Logging for AucEngine.

Every module logs through a child of the "aucengine" logger:

    engine      auction created / sold (INFO), price queries (DEBUG),
                rejected settlements (WARNING)
    store       record loads and settlement swaps
    ledger      mints (INFO), applied transfer legs (DEBUG)
    fees        recorded fees (DEBUG)
    events      every emitted lifecycle event (INFO), failing subscribers
    storage.*   SQLite setup
    bootstrap   owner initialisation

Console output is colored and goes to stderr so command results on stdout
(auction show, auction price) stay machine-readable. The optional log file
also records the thread name, since settlements run under per-auction locks
from many threads.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

ROOT_LOGGER = "aucengine"
LOG_FILE_NAME = "aucengine.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class AucEngineLogger:
    """Configures the aucengine logger tree once per process (or on demand)."""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
        force: bool = False,
    ):
        """
        Install the console handler and, optionally, the file handler.

        Args:
            level: Level for the aucengine tree and its handlers
            log_dir: Directory for aucengine.log (default ./logs)
            log_to_file: Also append to the log file
            force: Replace an existing configuration (the CLI's --debug)
        """
        if cls._initialized and not force:
            return

        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(level)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        console_handler = colorlog.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
            datefmt=DATE_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        ))
        root_logger.addHandler(console_handler)

        if log_to_file and cls._log_dir:
            file_handler = logging.FileHandler(cls._log_dir / LOG_FILE_NAME)
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s [%(name)s] (%(threadName)s) %(levelname)-8s %(message)s",
                datefmt=DATE_FORMAT,
            ))
            root_logger.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Logger for one subsystem, e.g. 'engine' -> 'aucengine.engine'.

        Configures defaults on first use so library callers get output
        without calling setup().
        """
        if not cls._initialized:
            cls.setup()

        return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific subsystem"""
    return AucEngineLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
):
    """(Re)configure logging from EngineConfig values; used by the CLI."""
    AucEngineLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file, force=True)
