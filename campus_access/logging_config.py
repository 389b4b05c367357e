# =======================================================================================
# campus_access/logging_config.py - Logging Setup
# =======================================================================================
"""
Root logger configuration.

``setup_logging`` attaches a console handler and, optionally, a file
handler to the root logger. It is a no-op when the root logger already
has handlers, so calling ``create_app`` repeatedly (tests) is safe.
"""
import logging
from pathlib import Path
from typing import Optional


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger once.

    Parameters
    ----------
    level : str
        Logging level name, case insensitive. Unknown names fall back
        to ``INFO``.
    logfile : Optional[str]
        Path of a file to mirror log records into. Resolved relative to
        the current working directory.
    """
    logger = logging.getLogger()
    if logger.handlers:
        return

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
