"""Logging configuration."""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def get_logger(
    name: str = "fmrec",
    log_file: str | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """Return a logger for the training engine.

    Modules inside the package log through ``logging.getLogger(__name__)``
    and reach these handlers by propagation, so callers only configure the
    root "fmrec" logger. Repeated calls never stack a second stdout
    handler, but each new ``log_file`` gets its own file handler. A dotted
    child whose parent already has handlers gets no stdout handler.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    parent_name = name.rsplit(".", 1)[0] if "." in name else None
    parent_configured = bool(parent_name and logging.getLogger(parent_name).handlers)
    # FileHandler subclasses StreamHandler, so match the exact type
    has_stdout = any(type(h) is logging.StreamHandler for h in logger.handlers)

    if not parent_configured and not has_stdout:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if log_file is not None:
        path = Path(log_file).resolve()
        attached = any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename) == path
            for h in logger.handlers
        )
        if not attached:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
