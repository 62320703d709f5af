from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

BUILTIN_STATUSES = ("todo", "inprogress", "done")


@dataclass(frozen=True)
class SubtaskRecord:
  title: str
  id: str | None = None
  completed: bool = False
  subtasks: tuple[SubtaskRecord, ...] = ()


@dataclass(frozen=True)
class StatusTransition:
  from_status: str
  to_status: str
  timestamp: datetime | None = None
  timezone: str = "UTC"


@dataclass(frozen=True)
class TaskRecord:
  """
  One task as the client holds it.

  Records are immutable; the reducer swaps whole records so that column
  snapshots stay valid after later edits.
  """

  id: str
  title: str
  description: str = ""
  status: str = "todo"
  board_id: str | None = None
  owner_id: str | None = None
  pinned: bool = False
  completed: bool = False
  due_date: datetime | None = None
  subtasks: tuple[SubtaskRecord, ...] = ()
  history: tuple[StatusTransition, ...] = ()
  position: int = 0
  created_at: datetime | None = None
  updated_at: datetime | None = None


@dataclass(frozen=True)
class BoardRecord:
  id: str
  name: str
  archived: bool = False
  owner_id: str | None = None
  created_at: datetime | None = None
  updated_at: datetime | None = None
