"""File-only logging for the stdio server.

stdout carries the MCP protocol and stderr belongs to the host, so the
server logs to a daily rotating file and nowhere else.
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from canvas_mcp.config import CanvasConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_FILENAME = "server.log"


def setup_logging(config: CanvasConfig) -> Path:
    """Route all logging to ``<log_dir>/server.log``.

    Must run before FastMCP is constructed: FastMCP calls
    ``logging.basicConfig``, which is a no-op once the root logger has a handler.

    Returns:
        Path of the log file
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = config.log_dir / LOG_FILENAME

    handler = TimedRotatingFileHandler(log_file, when="midnight", backupCount=7, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if config.debug else logging.INFO)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if config.debug else logging.WARNING)

    return log_file
