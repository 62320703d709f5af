from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from taskboard.client.errors import ValidationError
from taskboard.client.records import BUILTIN_STATUSES
from taskboard.client.settings import ClientSettings

logger = logging.getLogger(__name__)


class CustomStatus(BaseModel):
  name: str = Field(min_length=1, max_length=64)
  icon: str = ""


class BoardConfig(BaseModel):
  model_config = ConfigDict(validate_assignment=True)

  customStatuses: list[CustomStatus] = Field(default_factory=list)
  draftSubtasks: list[str] = Field(default_factory=list)

  def status_names(self) -> list[str]:
    return [s.name for s in self.customStatuses]

  def add_status(self, name: str, icon: str = "") -> CustomStatus:
    name = (name or "").strip()
    if not name:
      raise ValidationError("Column name is required")
    if name.lower() in BUILTIN_STATUSES or name in self.status_names():
      raise ValidationError(f"Column '{name}' already exists")
    status = CustomStatus(name=name, icon=icon)
    self.customStatuses = [*self.customStatuses, status]
    return status

  def remove_status(self, name: str) -> bool:
    if name.lower() in BUILTIN_STATUSES:
      raise ValidationError(f"'{name}' is a built-in column")
    kept = [s for s in self.customStatuses if s.name != name]
    removed = len(kept) != len(self.customStatuses)
    self.customStatuses = kept
    return removed


class ClientPreferences(BaseModel):
  theme: Literal["light", "dark"] = "light"
  language: str = "en"
  timezone: str = "UTC"
  boards: dict[str, BoardConfig] = Field(default_factory=dict)

  def board(self, board_id: str) -> BoardConfig:
    return self.boards.setdefault(board_id, BoardConfig())


class PreferenceStore:
  """
  JSON file behind `ClientPreferences`.

  Loaded once when the session starts and saved when it ends. Preferences are
  best-effort: a missing or unreadable file yields the defaults.
  """

  def __init__(self, path: str | os.PathLike[str]) -> None:
    self.path = Path(path).expanduser()

  @classmethod
  def from_settings(cls, settings: ClientSettings) -> PreferenceStore:
    return cls(settings.preferences_path)

  def load(self) -> ClientPreferences:
    try:
      text = self.path.read_text(encoding="utf-8")
    except FileNotFoundError:
      return ClientPreferences()
    except OSError as exc:
      logger.warning("could not read preferences %s: %s", self.path, exc)
      return ClientPreferences()
    try:
      return ClientPreferences.model_validate_json(text)
    except pydantic.ValidationError as exc:
      logger.warning("ignoring invalid preferences file %s: %s", self.path, exc.error_count())
      return ClientPreferences()

  def save(self, prefs: ClientPreferences) -> bool:
    tmp = self.path.with_name(self.path.name + ".tmp")
    try:
      self.path.parent.mkdir(parents=True, exist_ok=True)
      tmp.write_text(prefs.model_dump_json(indent=2), encoding="utf-8")
      os.replace(tmp, self.path)
    except OSError as exc:
      logger.warning("could not save preferences %s: %s", self.path, exc)
      return False
    return True
