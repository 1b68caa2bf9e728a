"""
Logging Configuration

Configures logging for extraction and sync runs.
Output goes to stderr to keep stdout clean for user-facing reports.

Vendor syncs run on pool threads ("vendor-sync_0", "sync-<vendor>_1"), so
every line carries the thread name to keep concurrent runs apart.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Chatty HTTP client loggers; held at WARNING even in verbose mode
QUIET_LOGGERS = ("urllib3", "requests")


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Configure the storefront_sync logger.

    Args:
        verbose: If True, set level to DEBUG
        quiet: If True, set level to WARNING
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logger = logging.getLogger("storefront_sync")
    logger.setLevel(level)

    # Avoid duplicate handlers if called multiple times
    logger.handlers.clear()
    logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
