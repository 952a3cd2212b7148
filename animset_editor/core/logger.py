from __future__ import annotations

import logging
import os
from typing import Optional

_ROOT_NAME = "animset_editor"
_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the package stream handler (once) and set the package level.

    The level comes from *level*, else ``ANIMSET_LOG_LEVEL``, else INFO.
    """
    global _configured
    root = logging.getLogger(_ROOT_NAME)
    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        root.addHandler(handler)
        root.propagate = False
        _configured = True
    name = (level or os.environ.get("ANIMSET_LOG_LEVEL") or "INFO").upper()
    root.setLevel(getattr(logging, name, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
