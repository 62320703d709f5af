from __future__ import annotations

import logging
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models import AuditEvent, Board, Task

logger = logging.getLogger(__name__)


async def write_audit(
  db: AsyncSession,
  *,
  event_type: str,
  entity_type: str,
  entity_id: str | None,
  board_id: str | None = None,
  task_id: str | None = None,
  actor_id: str | None = None,
  payload: dict[str, Any] | None = None,
) -> None:
  db.add(
    AuditEvent(
      board_id=board_id,
      task_id=task_id,
      actor_id=actor_id,
      event_type=event_type,
      entity_type=entity_type,
      entity_id=entity_id,
      payload=jsonable_encoder(payload or {}),
    )
  )
  logger.debug("audit %s %s=%s actor=%s", event_type, entity_type, entity_id, actor_id)


async def audit_board(db: AsyncSession, board: Board, event_type: str, *, actor_id: str, payload: dict[str, Any] | None = None) -> None:
  await write_audit(
    db,
    event_type=event_type,
    entity_type="Board",
    entity_id=board.id,
    board_id=board.id,
    actor_id=actor_id,
    payload=payload or {"name": board.name},
  )


async def audit_task(db: AsyncSession, task: Task, event_type: str, *, actor_id: str, payload: dict[str, Any] | None = None) -> None:
  # task_id carries no FK: events outlive deleted tasks.
  await write_audit(
    db,
    event_type=event_type,
    entity_type="Task",
    entity_id=task.id,
    board_id=task.board_id,
    task_id=task.id,
    actor_id=actor_id,
    payload=payload or {},
  )
