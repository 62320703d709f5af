from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.deps import get_current_user, get_db, get_owned_board, get_owned_task
from taskboard.models import AuditEvent, Board, User, as_utc
from taskboard.schemas import AuditOut

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[AuditOut])
async def list_audit(
  boardId: str | None = None,
  taskId: str | None = None,
  limit: int = 200,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[AuditOut]:
  q = select(AuditEvent).order_by(AuditEvent.created_at.desc()).limit(max(1, min(limit, 500)))
  if boardId:
    b = await get_owned_board(boardId, user, db)
    q = q.where(AuditEvent.board_id == b.id)
  if taskId:
    t = await get_owned_task(taskId, user, db)
    q = q.where(AuditEvent.task_id == t.id)
  if not boardId and not taskId:
    # Own actions plus anything recorded against boards the caller still owns.
    owned = select(Board.id).where(Board.owner_id == user.id)
    q = q.where((AuditEvent.actor_id == user.id) | AuditEvent.board_id.in_(owned))
  res = await db.execute(q)
  return [
    AuditOut(
      id=ev.id,
      boardId=ev.board_id,
      taskId=ev.task_id,
      actorId=ev.actor_id,
      eventType=ev.event_type,
      entityType=ev.entity_type,
      entityId=ev.entity_id,
      payload=ev.payload or {},
      createdAt=as_utc(ev.created_at),
    )
    for ev in res.scalars().all()
  ]
