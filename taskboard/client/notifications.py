from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
  def notify(self, level: str, message: str) -> None: ...


@dataclass
class NotificationLog:
  """Keeps every notification in memory; the UI drains `entries` as toasts."""

  entries: list[tuple[str, str]] = field(default_factory=list)

  def notify(self, level: str, message: str) -> None:
    self.entries.append((level, message))
    logger.log(logging.WARNING if level == "error" else logging.INFO, "notify %s: %s", level, message)

  def messages(self, level: str | None = None) -> list[str]:
    return [m for lv, m in self.entries if level is None or lv == level]
