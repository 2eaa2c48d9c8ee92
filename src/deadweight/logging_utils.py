from __future__ import annotations

import logging
import sys

LOGGER_NAME = "deadweight"

_QUIET_FORMAT = "deadweight: %(message)s"
# Files are analyzed on worker threads, so verbose lines carry the thread name.
_VERBOSE_FORMAT = "deadweight [%(levelname)s] %(name)s (%(threadName)s): %(message)s"


def configure_logging(*, verbose: bool, quiet: bool) -> logging.Logger:
    """
    Attach a stderr handler to the `deadweight` logger for CLI runs.

    - Default: INFO
    - --verbose: DEBUG, with logger and thread names
    - --quiet: WARNING

    Calling it again replaces the previous handler. Records still propagate to
    the root logger.
    """

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_VERBOSE_FORMAT if verbose else _QUIET_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
