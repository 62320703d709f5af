from __future__ import annotations

import uuid
from datetime import datetime, timezone

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db import SessionLocal
from taskboard.models import Board, Session as DbSession, Task, User, as_utc
from taskboard.security import session_token_hash


async def get_db() -> AsyncSession:
  async with SessionLocal() as session:
    yield session


def bearer_token(request: Request) -> str | None:
  auth = request.headers.get("authorization")
  if not auth or not auth.lower().startswith("bearer "):
    return None
  token = auth.split(" ", 1)[1].strip()
  return token or None


async def _user_for_token(token: str, db: AsyncSession) -> User:
  res = await db.execute(
    select(DbSession).where(DbSession.token_hash == session_token_hash(token), DbSession.revoked_at.is_(None))
  )
  s = res.scalar_one_or_none()
  if not s:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
  if as_utc(s.expires_at) < datetime.now(timezone.utc):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")
  ures = await db.execute(select(User).where(User.id == s.user_id))
  u = ures.scalar_one_or_none()
  if not u:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
  return u


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
  token = bearer_token(request)
  if not token:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
  return await _user_for_token(token, db)


async def get_optional_user(request: Request, db: AsyncSession = Depends(get_db)) -> User | None:
  token = bearer_token(request)
  if not token:
    return None
  return await _user_for_token(token, db)


def require_uuid(value: str, *, label: str) -> str:
  try:
    return str(uuid.UUID(value))
  except (ValueError, AttributeError, TypeError):
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label} ID") from None


async def get_owned_board(board_id: str, user: User, db: AsyncSession) -> Board:
  # Boards owned by someone else behave as absent.
  board_id = require_uuid(board_id, label="board")
  res = await db.execute(select(Board).where(Board.id == board_id, Board.owner_id == user.id))
  b = res.scalar_one_or_none()
  if not b:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")
  return b


async def get_owned_task(task_id: str, user: User, db: AsyncSession) -> Task:
  task_id = require_uuid(task_id, label="task")
  res = await db.execute(select(Task).where(Task.id == task_id, Task.owner_id == user.id))
  t = res.scalar_one_or_none()
  if not t:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
  return t


def client_ip(request: Request) -> str | None:
  return request.client.host if request.client else None
