from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from taskboard.client.errors import GatewayError, NotFoundError, SessionExpiredError, TransientError, ValidationError
from taskboard.client.records import BoardRecord, StatusTransition, SubtaskRecord, TaskRecord
from taskboard.client.settings import ClientSettings, normalize_base_url

logger = logging.getLogger(__name__)


def _parse_dt(value: Any) -> datetime | None:
  if isinstance(value, datetime):
    dt = value
  elif isinstance(value, str) and value.strip():
    try:
      dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
      return None
  else:
    return None
  return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def subtask_from_wire(d: Mapping[str, Any]) -> SubtaskRecord:
  done = d.get("completed")
  if done is None:
    done = d.get("done", False)
  return SubtaskRecord(
    id=d.get("id") or d.get("_id"),
    title=str(d.get("title") or ""),
    completed=bool(done),
    subtasks=tuple(subtask_from_wire(x) for x in (d.get("subtasks") or []) if isinstance(x, Mapping)),
  )


def subtask_to_wire(s: SubtaskRecord | Mapping[str, Any] | str) -> dict[str, Any]:
  if isinstance(s, str):
    s = SubtaskRecord(title=s)
  elif isinstance(s, Mapping):
    s = subtask_from_wire(s)
  out: dict[str, Any] = {"title": s.title, "completed": s.completed, "subtasks": [subtask_to_wire(x) for x in s.subtasks]}
  if s.id:
    out["id"] = s.id
  return out


def task_from_wire(d: Mapping[str, Any]) -> TaskRecord:
  """Accepts both the current wire shape and legacy `_id` / `desc` / `done` field names."""
  description = d.get("description")
  if description is None:
    description = d.get("desc")
  board = d.get("board")
  if isinstance(board, Mapping):
    board = board.get("id") or board.get("_id")
  history = tuple(
    StatusTransition(
      from_status=str(h.get("from") or ""),
      to_status=str(h.get("to") or ""),
      timestamp=_parse_dt(h.get("timestamp") or h.get("time")),
      timezone=str(h.get("timezone") or h.get("tz") or "UTC"),
    )
    for h in (d.get("history") or [])
    if isinstance(h, Mapping)
  )
  return TaskRecord(
    id=str(d.get("id") or d.get("_id") or ""),
    title=str(d.get("title") or ""),
    description=str(description or ""),
    status=str(d.get("status") or "todo"),
    board_id=board,
    owner_id=d.get("user"),
    pinned=bool(d.get("pinned", False)),
    completed=bool(d.get("completed", d.get("done", False))),
    due_date=_parse_dt(d.get("date") or d.get("dueDate")),
    subtasks=tuple(subtask_from_wire(x) for x in (d.get("subtasks") or []) if isinstance(x, Mapping)),
    history=history,
    position=int(d.get("position") or 0),
    created_at=_parse_dt(d.get("createdAt")),
    updated_at=_parse_dt(d.get("updatedAt")),
  )


_WIRE_NAMES = {
  "title": "title",
  "description": "description",
  "desc": "description",
  "status": "status",
  "board_id": "board",
  "completed": "completed",
  "done": "completed",
  "pinned": "pinned",
  "position": "position",
  "timezone": "timezone",
}


def task_to_wire(fields: Mapping[str, Any]) -> dict[str, Any]:
  out: dict[str, Any] = {}
  for key, value in fields.items():
    if key in ("due_date", "date"):
      out["date"] = value.isoformat() if isinstance(value, datetime) else value
    elif key == "subtasks":
      out["subtasks"] = [subtask_to_wire(s) for s in (value or [])]
    elif key in _WIRE_NAMES:
      out[_WIRE_NAMES[key]] = value
  return out


def board_from_wire(d: Mapping[str, Any]) -> BoardRecord:
  return BoardRecord(
    id=str(d.get("id") or d.get("_id") or ""),
    name=str(d.get("name") or ""),
    archived=bool(d.get("archived", False)),
    owner_id=d.get("user"),
    created_at=_parse_dt(d.get("createdAt")),
    updated_at=_parse_dt(d.get("updatedAt")),
  )


def _detail_message(r: httpx.Response) -> tuple[str, Any]:
  try:
    payload = r.json()
  except ValueError:
    text = (r.text or "").strip()
    return (text[:300] or f"HTTP {r.status_code}"), None
  if isinstance(payload, dict):
    detail = payload.get("detail", payload.get("message"))
    if isinstance(detail, dict):
      return str(detail.get("message") or f"HTTP {r.status_code}"), payload
    if detail:
      return str(detail), payload
  return f"HTTP {r.status_code}", payload


def error_for_response(r: httpx.Response) -> GatewayError:
  message, details = _detail_message(r)
  code = r.status_code
  if code in (400, 422):
    return ValidationError(message, status_code=code, details=details)
  if code == 401:
    return SessionExpiredError(message, status_code=code, details=details)
  if code in (403, 404):
    return NotFoundError(message, status_code=code, details=details)
  if code == 429 or code >= 500:
    return TransientError(message, status_code=code, details=details)
  return GatewayError(message, status_code=code, details=details)


class GatewayClient:
  """
  Thin async client for the taskboard REST API.

  Every call opens its own `httpx.AsyncClient` bounded by `timeout`; timeouts
  and transport failures surface as `TransientError`, HTTP errors through
  `error_for_response`.
  """

  def __init__(
    self,
    base_url: str,
    *,
    token: str | None = None,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
  ) -> None:
    self.base_url = normalize_base_url(base_url)
    self.token = token
    self.timeout = timeout
    self._transport = transport

  @classmethod
  def from_settings(cls, settings: ClientSettings, *, token: str | None = None) -> GatewayClient:
    return cls(settings.api_base_url, token=token, timeout=settings.request_timeout_seconds)

  def _headers(self) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if self.token:
      headers["Authorization"] = f"Bearer {self.token}"
    return headers

  async def request(self, method: str, path: str, *, json: Any = None) -> Any:
    try:
      async with httpx.AsyncClient(
        base_url=self.base_url, headers=self._headers(), timeout=self.timeout, transport=self._transport
      ) as client:
        r = await client.request(method, path, json=json)
    except httpx.TimeoutException as exc:
      raise TransientError(f"{method} {path} timed out") from exc
    except httpx.TransportError as exc:
      raise TransientError(f"{method} {path} failed: {exc}") from exc
    if r.status_code >= 400:
      err = error_for_response(r)
      logger.debug("gateway %s %s -> %s %s", method, path, r.status_code, err.message)
      raise err
    if r.status_code == 204 or not r.content:
      return None
    try:
      return r.json()
    except ValueError as exc:
      raise TransientError(f"{method} {path} returned invalid JSON", status_code=r.status_code) from exc

  # auth

  async def register(self, *, name: str, email: str, password: str) -> str:
    data = await self.request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
    self.token = data["token"]
    return self.token

  async def login(self, *, email: str, password: str) -> str:
    data = await self.request("POST", "/auth/login", json={"email": email, "password": password})
    self.token = data["token"]
    return self.token

  async def logout(self) -> None:
    await self.request("POST", "/auth/logout")
    self.token = None

  # boards

  async def list_boards(self) -> list[BoardRecord]:
    return [board_from_wire(b) for b in await self.request("GET", "/boards")]

  async def create_board(self, name: str) -> BoardRecord:
    return board_from_wire(await self.request("POST", "/boards", json={"name": name}))

  async def archive_board(self, board_id: str) -> BoardRecord:
    return board_from_wire(await self.request("PATCH", f"/boards/{board_id}/archive"))

  async def restore_board(self, board_id: str) -> BoardRecord:
    return board_from_wire(await self.request("PATCH", f"/boards/{board_id}/restore"))

  async def delete_board(self, board_id: str) -> None:
    await self.request("DELETE", f"/boards/{board_id}")

  async def delete_custom_column(self, board_id: str, column_name: str) -> int:
    data = await self.request("DELETE", f"/boards/{board_id}/custom-column/{quote(column_name, safe='')}")
    return int((data or {}).get("deletedTasks") or 0)

  # tasks

  async def list_tasks(self, board_id: str) -> list[TaskRecord]:
    return [task_from_wire(t) for t in await self.request("GET", f"/tasks/{board_id}")]

  async def create_task(self, fields: Mapping[str, Any]) -> TaskRecord:
    return task_from_wire(await self.request("POST", "/tasks", json=task_to_wire(fields)))

  async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> TaskRecord:
    return task_from_wire(await self.request("PUT", f"/tasks/{task_id}", json=task_to_wire(fields)))

  async def delete_task(self, task_id: str) -> None:
    await self.request("DELETE", f"/tasks/{task_id}")

  async def toggle_pin(self, task_id: str) -> bool:
    data = await self.request("PATCH", f"/tasks/{task_id}/pin")
    return bool(data["pinned"])

  # ai

  async def generate_draft(self, prompt: str) -> dict[str, Any]:
    return await self.request("POST", "/ai/generate", json={"prompt": prompt})
