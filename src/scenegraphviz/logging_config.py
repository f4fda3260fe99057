"""
Logging Configuration
Handlers for the 'scenegraphviz' logger tree. Every module logs through
logging.getLogger(__name__), so one call here covers the whole viewer.
"""
import logging
import sys
from typing import Mapping, Optional

PACKAGE_LOGGER = "scenegraphviz"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%H:%M:%S'

# Chatty at INFO during plotter setup
QUIET_LOGGERS = ("pyvista",)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    module_levels: Optional[Mapping[str, int]] = None,
) -> logging.Logger:
    """
    Attach console (and optional file) handlers to the package logger.

    Args:
        level: Level of the package logger and its handlers.
        log_file: Optional path; the file is truncated on start.
        module_levels: Per-module overrides relative to the package, e.g.
            {"controller.redraw": logging.DEBUG} to trace redraw passes only.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Calling twice (viewer restarted in-process) must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))

    for handler in handlers:
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for name, module_level in (module_levels or {}).items():
        logging.getLogger(f"{PACKAGE_LOGGER}.{name}").setLevel(module_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger.debug(f"Logging initialized (level {logging.getLevelName(level)}, file {log_file}).")
    return logger
