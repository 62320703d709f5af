from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.audit import audit_board
from taskboard.deps import get_current_user, get_db, get_owned_board
from taskboard.models import Board, Task, User
from taskboard.schemas import BUILTIN_STATUSES, BoardCreateIn, BoardOut, ColumnDeleteOut, MessageOut

router = APIRouter(prefix="/boards", tags=["boards"])


def _board_out(b: Board) -> BoardOut:
  return BoardOut(id=b.id, name=b.name, user=b.owner_id, archived=bool(b.archived), createdAt=b.created_at, updatedAt=b.updated_at)


@router.get("", response_model=list[BoardOut])
async def list_boards(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[BoardOut]:
  res = await db.execute(select(Board).where(Board.owner_id == user.id).order_by(Board.created_at.desc()))
  return [_board_out(b) for b in res.scalars().all()]


@router.post("", response_model=BoardOut, status_code=status.HTTP_201_CREATED)
async def create_board(payload: BoardCreateIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardOut:
  name = (payload.name or "").strip()
  if not name:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Board name is required")
  b = Board(name=name, owner_id=user.id)
  db.add(b)
  await db.flush()
  await audit_board(db, b, "board.created", actor_id=user.id)
  await db.commit()
  await db.refresh(b)
  return _board_out(b)


async def _set_archived(board_id: str, archived: bool, user: User, db: AsyncSession) -> BoardOut:
  b = await get_owned_board(board_id, user, db)
  if bool(b.archived) != archived:
    b.archived = archived
    await audit_board(db, b, "board.archived" if archived else "board.restored", actor_id=user.id)
    await db.commit()
    await db.refresh(b)
  return _board_out(b)


@router.patch("/{board_id}/archive", response_model=BoardOut)
async def archive_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardOut:
  return await _set_archived(board_id, True, user, db)


@router.patch("/{board_id}/restore", response_model=BoardOut)
async def restore_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardOut:
  return await _set_archived(board_id, False, user, db)


@router.delete("/{board_id}", response_model=MessageOut)
async def delete_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> MessageOut:
  b = await get_owned_board(board_id, user, db)
  count_res = await db.execute(select(func.count()).select_from(Task).where(Task.board_id == b.id))
  task_count = int(count_res.scalar_one())
  # SQLite ignores ON DELETE CASCADE unless foreign_keys is switched on.
  await db.execute(delete(Task).where(Task.board_id == b.id))
  await audit_board(db, b, "board.deleted", actor_id=user.id, payload={"name": b.name, "deletedTasks": task_count})
  await db.delete(b)
  await db.commit()
  return MessageOut(message="Board and its tasks deleted")


@router.delete("/{board_id}/custom-column/{column_name}", response_model=ColumnDeleteOut)
async def delete_custom_column(
  board_id: str, column_name: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
) -> ColumnDeleteOut:
  name = column_name.strip()
  if not name or name.lower() in BUILTIN_STATUSES:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Built-in columns cannot be deleted")
  b = await get_owned_board(board_id, user, db)
  res = await db.execute(delete(Task).where(Task.board_id == b.id, Task.status == name))
  deleted = int(res.rowcount or 0)
  await audit_board(db, b, "board.column_deleted", actor_id=user.id, payload={"column": name, "deletedTasks": deleted})
  await db.commit()
  return ColumnDeleteOut(message=f"Column '{name}' deleted", deletedTasks=deleted)
