from __future__ import annotations

import uuid
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.audit import audit_task
from taskboard.deps import get_current_user, get_db, get_owned_board, get_owned_task
from taskboard.models import Task, User, as_utc, utcnow
from taskboard.schemas import (
  MessageOut,
  PinOut,
  StatusTransitionOut,
  SubtaskIn,
  SubtaskOut,
  TaskCreateIn,
  TaskOut,
  TaskUpdateIn,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])

# Column order: pinned first, then rank, then newest.
_COLUMN_ORDER = (Task.pinned.desc(), Task.position.asc(), Task.created_at.desc())


def _task_out(t: Task) -> TaskOut:
  return TaskOut(
    id=t.id,
    title=t.title,
    description=t.description or "",
    status=t.status,
    board=t.board_id,
    user=t.owner_id,
    pinned=bool(t.pinned),
    completed=bool(t.completed),
    date=as_utc(t.due_date),
    subtasks=[SubtaskOut.model_validate(s) for s in (t.subtasks or [])],
    history=[StatusTransitionOut.model_validate(h) for h in (t.history or [])],
    position=int(t.position or 0),
    createdAt=as_utc(t.created_at),
    updatedAt=as_utc(t.updated_at),
  )


def _subtasks_json(items: list[SubtaskIn]) -> list[dict[str, Any]]:
  return [
    {
      "id": s.id or str(uuid.uuid4()),
      "title": s.title.strip(),
      "completed": bool(s.completed),
      "subtasks": _subtasks_json(s.subtasks),
    }
    for s in items
  ]


def _tz_name(value: str | None) -> str:
  name = (value or "").strip()
  if not name:
    return "UTC"
  try:
    ZoneInfo(name)
  except (ZoneInfoNotFoundError, ValueError):
    return "UTC"
  return name


def _transition(from_status: str, to_status: str, tz: str | None) -> dict[str, Any]:
  return {"from": from_status, "to": to_status, "timestamp": utcnow().isoformat(), "timezone": _tz_name(tz)}


async def _next_position(db: AsyncSession, board_id: str, status_key: str) -> int:
  res = await db.execute(select(func.max(Task.position)).where(Task.board_id == board_id, Task.status == status_key))
  current = res.scalar_one_or_none()
  return 0 if current is None else int(current) + 1


async def _column(db: AsyncSession, board_id: str, status_key: str, *, exclude_id: str) -> list[Task]:
  res = await db.execute(
    select(Task).where(Task.board_id == board_id, Task.status == status_key, Task.id != exclude_id).order_by(*_COLUMN_ORDER)
  )
  return list(res.scalars().all())


async def _place_in_column(db: AsyncSession, t: Task, *, from_status: str, index: int) -> None:
  # Reindex in memory, then write sequential positions.
  arr = await _column(db, t.board_id, t.status, exclude_id=t.id)
  arr.insert(min(index, len(arr)), t)
  arr = [x for x in arr if x.pinned] + [x for x in arr if not x.pinned]
  for idx, x in enumerate(arr):
    x.position = idx
  if from_status != t.status:
    for idx, x in enumerate(await _column(db, t.board_id, from_status, exclude_id=t.id)):
      x.position = idx


@router.get("/{board_id}", response_model=list[TaskOut])
async def list_tasks(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[TaskOut]:
  b = await get_owned_board(board_id, user, db)
  res = await db.execute(select(Task).where(Task.board_id == b.id).order_by(*_COLUMN_ORDER))
  return [_task_out(t) for t in res.scalars().all()]


@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(payload: TaskCreateIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> TaskOut:
  title = (payload.title or "").strip()
  if not title or not payload.board:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and board are required")
  b = await get_owned_board(payload.board, user, db)
  status_key = (payload.status or "").strip() or "todo"

  t = Task(
    board_id=b.id,
    owner_id=user.id,
    title=title,
    description=payload.description or "",
    status=status_key,
    pinned=False,
    completed=False,
    due_date=payload.date,
    subtasks=_subtasks_json(payload.subtasks),
    history=[_transition("created", status_key, payload.timezone)],
    position=await _next_position(db, b.id, status_key),
  )
  db.add(t)
  await db.flush()
  await audit_task(db, t, "task.created", actor_id=user.id, payload={"title": t.title, "status": t.status})
  await db.commit()
  await db.refresh(t)
  return _task_out(t)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(task_id: str, payload: TaskUpdateIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> TaskOut:
  t = await get_owned_task(task_id, user, db)
  fields_set = payload.model_fields_set
  changed: dict[str, Any] = {}

  if "title" in fields_set:
    title = (payload.title or "").strip()
    if not title:
      raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title cannot be empty")
    t.title = title
    changed["title"] = title
  if "description" in fields_set:
    t.description = payload.description or ""
    changed["description"] = t.description[:500]
  if "date" in fields_set:
    t.due_date = payload.date
    changed["date"] = payload.date
  if "completed" in fields_set and payload.completed is not None:
    t.completed = payload.completed
    changed["completed"] = payload.completed
  if "pinned" in fields_set and payload.pinned is not None:
    t.pinned = payload.pinned
    changed["pinned"] = payload.pinned
  if "subtasks" in fields_set:
    t.subtasks = _subtasks_json(payload.subtasks or [])
    changed["subtasks"] = len(t.subtasks)

  from_status = t.status
  if "status" in fields_set:
    to_status = (payload.status or "").strip()
    if not to_status:
      raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Status cannot be empty")
    if to_status != from_status:
      t.status = to_status
      t.history = [*(t.history or []), _transition(from_status, to_status, payload.timezone)]
      changed["status"] = {"from": from_status, "to": to_status}

  if "position" in fields_set and payload.position is not None:
    await _place_in_column(db, t, from_status=from_status, index=payload.position)
    changed["position"] = t.position
  elif t.status != from_status:
    t.position = await _next_position(db, t.board_id, t.status)

  event = "task.moved" if ("status" in changed or "position" in changed) else "task.updated"
  await audit_task(db, t, event, actor_id=user.id, payload={"changed": list(changed.keys()), "fields": changed})
  await db.commit()
  await db.refresh(t)
  return _task_out(t)


@router.delete("/{task_id}", response_model=MessageOut)
async def delete_task(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> MessageOut:
  t = await get_owned_task(task_id, user, db)
  await audit_task(db, t, "task.deleted", actor_id=user.id, payload={"title": t.title})
  await db.delete(t)
  await db.commit()
  return MessageOut(message="Task deleted")


@router.patch("/{task_id}/pin", response_model=PinOut)
async def toggle_pin(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> PinOut:
  t = await get_owned_task(task_id, user, db)
  t.pinned = not bool(t.pinned)
  await audit_task(db, t, "task.pinned" if t.pinned else "task.unpinned", actor_id=user.id)
  await db.commit()
  return PinOut(pinned=t.pinned, message="Task pinned" if t.pinned else "Task unpinned")
