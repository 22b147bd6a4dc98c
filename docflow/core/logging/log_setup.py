"""Logging bootstrap for applications embedding docflow.

The library itself only creates module loggers; handlers are installed by
the host application through :func:`configure_logging`.
"""
from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_HANDLER_NAME = "docflow-stream"


def configure_logging(level: Optional[str | int] = None) -> logging.Logger:
    """Attach a single stream handler to the ``docflow`` logger.

    Args:
        level: Log level name or number. Defaults to ``[General] log_level``.

    Returns:
        The configured ``docflow`` package logger.
    """
    if level is None:
        from docflow.core.config.config_service import get_config_service

        level = get_config_service().general.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger("docflow")
    root.setLevel(level)
    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root
