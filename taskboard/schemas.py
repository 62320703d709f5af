from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

BUILTIN_STATUSES = ("todo", "inprogress", "done")


def _parse_dt_utc(value: object) -> object:
  if value is None:
    return None
  if isinstance(value, datetime):
    dt = value
  elif isinstance(value, str):
    s = value.strip()
    if not s:
      return None
    if _DATE_ONLY_RE.fullmatch(s):
      dt = datetime.fromisoformat(s)
    else:
      dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
  else:
    return value

  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


class UserOut(BaseModel):
  id: str
  email: str
  name: str


class RegisterIn(BaseModel):
  name: str = Field(min_length=1, max_length=120)
  email: str = Field(min_length=3, max_length=320)
  password: str = Field(min_length=6, max_length=200)


class LoginIn(BaseModel):
  email: str
  password: str


class AuthOut(BaseModel):
  token: str
  expiresAt: datetime
  user: UserOut


class MessageOut(BaseModel):
  message: str


class BoardCreateIn(BaseModel):
  name: str | None = Field(default=None, max_length=120)


class BoardOut(BaseModel):
  id: str
  name: str
  user: str
  archived: bool
  createdAt: datetime
  updatedAt: datetime


class ColumnDeleteOut(BaseModel):
  message: str
  deletedTasks: int


class SubtaskIn(BaseModel):
  id: str | None = None
  title: str = Field(default="", max_length=500)
  completed: bool = False
  subtasks: list[SubtaskIn] = []


class SubtaskOut(BaseModel):
  id: str
  title: str
  completed: bool
  subtasks: list[SubtaskOut] = []


class StatusTransitionOut(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  from_: str = Field(alias="from")
  to: str
  timestamp: datetime
  timezone: str


class TaskCreateIn(BaseModel):
  title: str | None = Field(default=None, max_length=220)
  description: str = Field(default="", max_length=20000)
  status: str | None = Field(default=None, max_length=64)
  board: str | None = None
  date: datetime | None = None
  subtasks: list[SubtaskIn] = []
  timezone: str | None = Field(default=None, max_length=64)

  @field_validator("date", mode="before")
  @classmethod
  def _date_to_utc(cls, v: object) -> object:
    return _parse_dt_utc(v)


class TaskUpdateIn(BaseModel):
  title: str | None = Field(default=None, max_length=220)
  description: str | None = Field(default=None, max_length=20000)
  status: str | None = Field(default=None, max_length=64)
  date: datetime | None = None
  completed: bool | None = None
  pinned: bool | None = None
  subtasks: list[SubtaskIn] | None = None
  position: int | None = Field(default=None, ge=0)
  timezone: str | None = Field(default=None, max_length=64)

  @field_validator("date", mode="before")
  @classmethod
  def _date_to_utc(cls, v: object) -> object:
    return _parse_dt_utc(v)


class TaskOut(BaseModel):
  id: str
  title: str
  description: str
  status: str
  board: str
  user: str
  pinned: bool
  completed: bool
  date: datetime | None
  subtasks: list[SubtaskOut]
  history: list[StatusTransitionOut]
  position: int
  createdAt: datetime
  updatedAt: datetime


class PinOut(BaseModel):
  pinned: bool
  message: str


class AIGenerateIn(BaseModel):
  prompt: str | None = Field(default=None, max_length=4000)


class AISubtaskOut(BaseModel):
  title: str


class AIDraftTaskOut(BaseModel):
  title: str
  description: str
  subtasks: list[AISubtaskOut]
  due_in_days: int | float
  priority: str
  category: str


class AIGenerateOut(BaseModel):
  success: bool
  result: str
  task: AIDraftTaskOut


class AuditOut(BaseModel):
  id: str
  boardId: str | None
  taskId: str | None
  actorId: str | None
  eventType: str
  entityType: str
  entityId: str | None
  payload: dict[str, Any]
  createdAt: datetime
