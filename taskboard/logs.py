from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
  root = logging.getLogger("taskboard")
  if not root.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
  root.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))
