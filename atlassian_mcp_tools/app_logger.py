# app_logger.py
import os
import sys
import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the server and CLI.

    Everything goes to stderr; stdout carries the MCP stdio protocol.

    Args:
        level: Level name, LOG_LEVEL environment variable or INFO when omitted
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # requests/urllib3 connection chatter is noise at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
