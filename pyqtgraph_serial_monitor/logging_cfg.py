"""
Logging setup for the application entry point.

Library modules only do `LOG = logging.getLogger(__name__)`; this installs
the handlers once:
- console handler at the requested level
- optional rotating file handler (DEBUG and up)
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER = "pyqtgraph_serial_monitor"

CONSOLE_FORMAT = "[%(levelname)s] %(asctime)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(threadName)s | %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO,
                      log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    if logger.handlers:  # already configured
        return logger

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=3 * 1024 * 1024,  # 3 MB
            backupCount=5,
            encoding="utf-8",
        )
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(fh)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(level)

    logger.propagate = False
    return logger
