from __future__ import annotations

import logging
import sys

from resale_ledger.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    global _configured
    level_name = (level or get_settings().log_level).upper()
    root = logging.getLogger("resale_ledger")
    root.setLevel(level_name)
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = True
    _configured = True
