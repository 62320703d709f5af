from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
  # SQLite hands back naive datetimes even for timezone-aware columns.
  if value is None:
    return None
  if value.tzinfo is None:
    return value.replace(tzinfo=timezone.utc)
  return value.astimezone(timezone.utc)


def _uuid() -> str:
  return str(uuid.uuid4())


class Base(DeclarativeBase):
  pass


class User(Base):
  __tablename__ = "users"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  password_hash: Mapped[str] = mapped_column(String, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Session(Base):
  __tablename__ = "sessions"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  token_hash: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  created_ip: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Board(Base):
  __tablename__ = "boards"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  name: Mapped[str] = mapped_column(String, nullable=False)
  owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Task(Base):
  __tablename__ = "tasks"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  board_id: Mapped[str] = mapped_column(String(36), ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
  owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  status: Mapped[str] = mapped_column(String, nullable=False, default="todo", index=True)
  pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  subtasks: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
  history: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class AuditEvent(Base):
  __tablename__ = "audit_events"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  board_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
  task_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
  actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
  event_type: Mapped[str] = mapped_column(String, nullable=False)
  entity_type: Mapped[str] = mapped_column(String, nullable=False)
  entity_id: Mapped[str | None] = mapped_column(String, nullable=True)
  payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
