"""Centralised Loguru configuration.

Use setup_logger() at program start. Idempotent – repeated calls are no-ops.
Records always go to stderr: stdout carries the stdio protocol frames and the
CLI answer text.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal, Optional

from loguru import logger

_INITIALISED = False


def setup_logger(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None,
    log_dir: Optional[str] = None,
) -> None:
    """Configure Loguru sinks once per process.

    If *level* is *None* the values of ``settings.LOG_LEVEL`` and
    ``settings.LOG_DIR`` are used.  File sinks are only added when a log
    directory is known.
    """

    global _INITIALISED
    if _INITIALISED:
        return

    if level is None:
        from dify_mcp.settings import get_settings

        settings = get_settings()
        level = settings.LOG_LEVEL.upper()  # type: ignore[assignment]
        log_dir = log_dir or settings.LOG_DIR

    logger.remove()  # remove default stderr sink

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        logger.add(str(Path(log_dir) / "app.log"), level="INFO", rotation="1 MB", retention="10 days")
        logger.add(str(Path(log_dir) / "debug.log"), level="DEBUG", rotation="1 MB", retention="10 days")

    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        colorize=True,
    )

    logger.info("Logger initialised (level: {})", level)

    _INITIALISED = True
