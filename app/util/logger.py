"""
Logging setup shared by every stage.

- get_logger(name): module logger under the "invoice_ingest" namespace.
- One stream handler, installed once; level from INVOICE_INGEST_LOG_LEVEL (default INFO).
"""

import logging
import os
from typing import Optional

ROOT_LOGGER_NAME = "invoice_ingest"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        level = os.getenv("INVOICE_INGEST_LOG_LEVEL", "INFO").upper()
        root.setLevel(getattr(logging, level, logging.INFO))
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    root = _configure_root()
    if not name:
        return root
    return root.getChild(name.rsplit(".", 1)[-1])
