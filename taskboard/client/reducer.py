"""
Client-side task list state for the board view.

The reducer owns `columns[board_id][column] -> [TaskRecord]` and applies every
mutation optimistically: the local change happens synchronously, before the
first await, and the gateway call that persists it follows. Persistence calls
go through a single FIFO lock so they reach the gateway in mutation order.
When a call fails the optimistic state is discarded by refetching the board;
if the refetch fails too, the pre-mutation snapshot comes back.

Every column of a loaded board is present (possibly empty) whenever control
returns to the event loop, and pinned tasks always sort before unpinned ones.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import replace
from typing import Any

from taskboard.client.errors import GatewayError, NotFoundError, SessionExpiredError, ValidationError
from taskboard.client.gateway import GatewayClient
from taskboard.client.notifications import NotificationLog, Notifier
from taskboard.client.records import BUILTIN_STATUSES, TaskRecord

logger = logging.getLogger(__name__)

Columns = dict[str, list[TaskRecord]]

REORDER = "reorder"
ADD = "add"


def save_key(task_id: str) -> str:
  return f"save:{task_id}"


def pinned_first(tasks: Iterable[TaskRecord]) -> list[TaskRecord]:
  tasks = list(tasks)
  return [t for t in tasks if t.pinned] + [t for t in tasks if not t.pinned]


class TaskListReducer:
  def __init__(
    self,
    gateway: GatewayClient,
    *,
    notifier: Notifier | None = None,
    on_session_expired: Callable[[], Awaitable[None] | None] | None = None,
    timezone: str | None = None,
  ) -> None:
    self.gateway = gateway
    self.notifier = notifier or NotificationLog()
    self.on_session_expired = on_session_expired
    self.timezone = timezone
    self.columns: dict[str, Columns] = {}
    self.archived: dict[str, list[TaskRecord]] = {}
    self.active_board: str | None = None
    self._custom: dict[str, list[str]] = {}
    self._in_flight: Counter[str] = Counter()
    self._lock = asyncio.Lock()

  # state helpers

  def is_busy(self, key: str) -> bool:
    return self._in_flight[key] > 0

  def _begin(self, key: str) -> None:
    self._in_flight[key] += 1

  def _end(self, key: str) -> None:
    self._in_flight[key] -= 1
    if self._in_flight[key] <= 0:
      del self._in_flight[key]

  def _board(self, board_id: str | None) -> str:
    bid = board_id or self.active_board
    if not bid:
      raise ValidationError("No board selected")
    return bid

  def column_ids(self, board_id: str) -> list[str]:
    ids = list(BUILTIN_STATUSES)
    for name in self._custom.get(board_id, []):
      if name not in ids:
        ids.append(name)
    for name in self.columns.get(board_id, {}):
      if name not in ids:
        ids.append(name)
    return ids

  def _ensure_columns(self, board_id: str) -> Columns:
    cols = self.columns.setdefault(board_id, {})
    for name in self.column_ids(board_id):
      cols.setdefault(name, [])
    return cols

  def set_custom_statuses(self, board_id: str, names: Iterable[str]) -> None:
    self._custom[board_id] = [n for n in names if n and n.lower() not in BUILTIN_STATUSES]
    if board_id in self.columns:
      self._ensure_columns(board_id)

  def drop_column(self, board_id: str, name: str) -> None:
    if name.lower() in BUILTIN_STATUSES:
      raise ValidationError(f"'{name}' is a built-in column")
    self._custom[board_id] = [n for n in self._custom.get(board_id, []) if n != name]
    self.columns.get(board_id, {}).pop(name, None)
    self.archived[board_id] = [t for t in self.archived.get(board_id, []) if t.status != name]

  def forget_board(self, board_id: str) -> None:
    self.columns.pop(board_id, None)
    self.archived.pop(board_id, None)
    self._custom.pop(board_id, None)
    if self.active_board == board_id:
      self.active_board = None

  def snapshot(self, board_id: str) -> Columns:
    return {name: list(tasks) for name, tasks in self.columns.get(board_id, {}).items()}

  def _locate(self, task_id: str) -> tuple[str, str, int] | None:
    for board_id, cols in self.columns.items():
      for name, tasks in cols.items():
        for idx, t in enumerate(tasks):
          if t.id == task_id:
            return board_id, name, idx
    return None

  def find(self, task_id: str) -> TaskRecord | None:
    loc = self._locate(task_id)
    if loc is None:
      return None
    board_id, name, idx = loc
    return self.columns[board_id][name][idx]

  def _remove(self, task_id: str) -> TaskRecord | None:
    loc = self._locate(task_id)
    if loc is None:
      return None
    board_id, name, idx = loc
    return self.columns[board_id][name].pop(idx)

  def _append(self, board_id: str, task: TaskRecord) -> None:
    cols = self._ensure_columns(board_id)
    col = cols.setdefault(task.status, [])
    col.append(task)
    cols[task.status] = pinned_first(col)

  def _merge(self, task: TaskRecord, *, fallback_board: str) -> None:
    loc = self._locate(task.id)
    if loc is None:
      self._append(task.board_id or fallback_board, task)
      return
    board_id, name, idx = loc
    cols = self.columns[board_id]
    if name == task.status:
      cols[name][idx] = task
      cols[name] = pinned_first(cols[name])
    else:
      cols[name].pop(idx)
      self._append(board_id, task)

  async def _session_expired(self) -> None:
    self.notifier.notify("error", "Session expired, please sign in again")
    if self.on_session_expired is None:
      return
    res = self.on_session_expired()
    if inspect.isawaitable(res):
      await res

  async def _persist(self, call: Callable[[], Awaitable[Any]]) -> Any:
    async with self._lock:
      return await call()

  # loading

  async def _fetch(self, board_id: str) -> Columns:
    tasks = await self.gateway.list_tasks(board_id)
    hidden = {t.id for t in self.archived.get(board_id, [])}
    cols: Columns = {}
    self.columns[board_id] = cols
    self._ensure_columns(board_id)
    for t in tasks:
      if t.id in hidden:
        continue
      cols.setdefault(t.status, []).append(t)
    for name in list(cols):
      cols[name] = pinned_first(cols[name])
    return cols

  async def load(self, board_id: str) -> bool:
    self.active_board = board_id
    return await self.refresh(board_id)

  async def refresh(self, board_id: str | None = None) -> bool:
    board_id = self._board(board_id)
    try:
      await self._fetch(board_id)
    except SessionExpiredError:
      await self._session_expired()
      return False
    except GatewayError as exc:
      logger.warning("loading tasks for board %s failed: %s", board_id, exc)
      self.notifier.notify("error", "Failed to load tasks")
      self._ensure_columns(board_id)
      return False
    return True

  # mutations

  async def move_task(
    self, source_column: str, source_index: int, dest_column: str, dest_index: int, *, board_id: str | None = None
  ) -> bool:
    """
    Drag-and-drop move. Returns True once the gateway accepted the move.

    Dropping a task where it was picked up is a no-op and issues no call.
    """
    if source_column == dest_column and source_index == dest_index:
      return False
    board_id = self._board(board_id)
    cols = self.columns.get(board_id)
    if cols is None or source_column not in cols:
      return False
    src = cols[source_column]
    if not 0 <= source_index < len(src):
      return False

    before = self.snapshot(board_id)
    task = src.pop(source_index)
    dest = cols.setdefault(dest_column, [])
    dest.insert(max(0, min(dest_index, len(dest))), task)
    dest = pinned_first(dest)
    final_index = next(i for i, t in enumerate(dest) if t.id == task.id)
    dest[final_index] = replace(task, status=dest_column, position=final_index)
    cols[dest_column] = dest
    self._ensure_columns(board_id)

    fields: dict[str, Any] = {"status": dest_column, "position": final_index}
    if self.timezone:
      fields["timezone"] = self.timezone
    self._begin(REORDER)
    try:
      await self._persist(lambda: self.gateway.update_task(task.id, fields))
    except SessionExpiredError:
      self.columns[board_id] = before
      await self._session_expired()
      return False
    except GatewayError as exc:
      logger.warning("moving task %s to %s[%d] failed: %s", task.id, dest_column, final_index, exc)
      self.notifier.notify("error", "Failed to update task position")
      try:
        await self._fetch(board_id)
      except GatewayError as refetch_exc:
        logger.warning("refetch after failed move failed, restoring snapshot: %s", refetch_exc)
        self.columns[board_id] = before
      return False
    finally:
      self._end(REORDER)
    return True

  async def add_task(self, column: str, fields: Mapping[str, Any], *, board_id: str | None = None) -> TaskRecord | None:
    title = str(fields.get("title") or "").strip()
    if not title:
      raise ValidationError("Title is required")
    board_id = self._board(board_id)
    payload = {**fields, "title": title, "status": column, "board_id": board_id}
    if self.timezone:
      payload.setdefault("timezone", self.timezone)

    self._begin(ADD)
    try:
      created = await self._persist(lambda: self.gateway.create_task(payload))
    except SessionExpiredError:
      await self._session_expired()
      return None
    except GatewayError as exc:
      logger.warning("creating task on board %s failed: %s", board_id, exc)
      self.notifier.notify("error", "Failed to add task")
      return None
    finally:
      self._end(ADD)
    self._append(board_id, created)
    return created

  async def update_task(self, task: TaskRecord, fields: Mapping[str, Any]) -> TaskRecord | None:
    if "title" in fields and not str(fields.get("title") or "").strip():
      raise ValidationError("Title is required")
    payload = dict(fields)
    if "status" in payload and self.timezone:
      payload.setdefault("timezone", self.timezone)
    board_id = task.board_id or self.active_board

    key = save_key(task.id)
    self._begin(key)
    try:
      updated = await self._persist(lambda: self.gateway.update_task(task.id, payload))
    except NotFoundError:
      self.notifier.notify("error", "Task no longer exists")
      self._remove(task.id)
      if board_id:
        await self.refresh(board_id)
      return None
    except SessionExpiredError:
      await self._session_expired()
      return None
    except GatewayError as exc:
      logger.warning("saving task %s failed: %s", task.id, exc)
      self.notifier.notify("error", "Failed to save task")
      return None
    finally:
      self._end(key)
    self._merge(updated, fallback_board=board_id or "")
    return updated

  async def toggle_complete(self, task: TaskRecord) -> TaskRecord | None:
    current = self.find(task.id) or task
    return await self.update_task(current, {"completed": not current.completed})

  async def toggle_pin(self, task: TaskRecord) -> bool | None:
    key = save_key(task.id)
    self._begin(key)
    try:
      pinned = await self._persist(lambda: self.gateway.toggle_pin(task.id))
    except NotFoundError:
      self.notifier.notify("error", "Task no longer exists")
      self._remove(task.id)
      return None
    except SessionExpiredError:
      await self._session_expired()
      return None
    except GatewayError as exc:
      logger.warning("pinning task %s failed: %s", task.id, exc)
      self.notifier.notify("error", "Failed to update pin")
      return None
    finally:
      self._end(key)
    current = self.find(task.id)
    if current is not None:
      self._merge(replace(current, pinned=pinned), fallback_board=current.board_id or "")
    return pinned

  async def delete_task(self, task_id: str) -> bool:
    key = save_key(task_id)
    self._begin(key)
    try:
      await self._persist(lambda: self.gateway.delete_task(task_id))
    except NotFoundError:
      logger.info("task %s already gone on the gateway", task_id)
    except SessionExpiredError:
      await self._session_expired()
      return False
    except GatewayError as exc:
      logger.warning("deleting task %s failed: %s", task_id, exc)
      self.notifier.notify("error", "Failed to delete task")
      return False
    finally:
      self._end(key)
    for cols in self.columns.values():
      for name in cols:
        cols[name] = [t for t in cols[name] if t.id != task_id]
    for board_id in self.archived:
      self.archived[board_id] = [t for t in self.archived[board_id] if t.id != task_id]
    return True

  def archive_task(self, task: TaskRecord) -> bool:
    # Session only: the gateway keeps the task untouched.
    loc = self._locate(task.id)
    if loc is None:
      return False
    board_id = loc[0]
    removed = self._remove(task.id)
    self.archived.setdefault(board_id, []).append(removed)
    return True

  def restore_archived(self, task_id: str, *, board_id: str | None = None) -> TaskRecord | None:
    boards = [board_id] if board_id else list(self.archived)
    for bid in boards:
      items = self.archived.get(bid, [])
      for idx, t in enumerate(items):
        if t.id == task_id:
          items.pop(idx)
          self._append(bid, t)
          return t
    return None

  # views

  def filter_columns(self, search: str = "", status_filter: str = "all", *, board_id: str | None = None) -> Columns:
    board_id = self._board(board_id)
    q = (search or "").strip().lower()
    out: Columns = {}
    for name in self.column_ids(board_id):
      if status_filter not in ("", "all") and name != status_filter:
        continue
      tasks = self.columns.get(board_id, {}).get(name, [])
      if q:
        tasks = [t for t in tasks if q in t.title.lower() or q in (t.description or "").lower()]
      out[name] = pinned_first(tasks)
    return out
