"""Logging for the dbxkit package.

dbxkit is imported by evaluation harnesses, so it never prints on its own:
every module logs under the "dbxkit" logger, which only carries a
NullHandler. The harness's own logging config decides what is shown.

The dbxkit CLI is the exception: configure_logging() attaches a single
console handler to "dbxkit" and stops propagation, so records are not
printed twice when the root logger is configured as well.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

ROOT_LOGGER = "dbxkit"
LOG_FORMAT = "[%(levelname)s] %(name)s:%(lineno)d - %(message)s"

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())

def get_logger(name: str) -> logging.Logger:
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)

def configure_logging(level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel((level or os.environ.get("DBXKIT_LOG_LEVEL") or "INFO").upper())

    if not any(getattr(h, "_dbxkit_console", False) for h in logger.handlers):
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(LOG_FORMAT))
        h._dbxkit_console = True
        logger.addHandler(h)
    logger.propagate = False
    return logger

def log_step(logger: logging.Logger, step: str, msg: str):
    logger.info("[STEP %s] %s", step, msg)
