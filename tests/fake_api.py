from __future__ import annotations

import json
import uuid
from typing import Any

import httpx

from taskboard.client.gateway import GatewayClient


def wire_task(task_id: str, title: str, *, status: str = "todo", pinned: bool = False, description: str = "", board: str = "b1") -> dict[str, Any]:
  return {
    "id": task_id,
    "title": title,
    "description": description,
    "status": status,
    "board": board,
    "user": "u1",
    "pinned": pinned,
    "completed": False,
    "date": None,
    "subtasks": [],
    "history": [],
    "position": 0,
    "createdAt": "2026-01-01T00:00:00Z",
    "updatedAt": "2026-01-01T00:00:00Z",
  }


class FakeApi:
  """
  In-memory stand-in for the task endpoints, used through httpx.MockTransport.

  `fail` maps an HTTP method to a status code or a ready `httpx.Response` to
  answer with, or to an exception instance to raise.
  """

  def __init__(self, tasks: list[dict[str, Any]] | None = None) -> None:
    self.tasks = list(tasks or [])
    self.calls: list[tuple[str, str, Any]] = []
    self.fail: dict[str, Any] = {}

  def gateway(self) -> GatewayClient:
    return GatewayClient("http://api.test", token="tb_test", transport=httpx.MockTransport(self))

  def _find(self, task_id: str) -> dict[str, Any] | None:
    return next((t for t in self.tasks if t["id"] == task_id), None)

  def __call__(self, request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content) if request.content else None
    path = request.url.path
    self.calls.append((request.method, path, body))
    failure = self.fail.get(request.method)
    if isinstance(failure, Exception):
      raise failure
    if isinstance(failure, httpx.Response):
      return failure
    if failure is not None:
      return httpx.Response(failure, json={"detail": "simulated failure"})

    parts = path.strip("/").split("/")
    if request.method == "GET" and parts[0] == "tasks":
      return httpx.Response(200, json=[t for t in self.tasks if t["board"] == parts[1]])
    if request.method == "POST" and path == "/tasks":
      t = wire_task(str(uuid.uuid4()), body["title"], status=body.get("status") or "todo", board=body["board"])
      t["description"] = body.get("description") or ""
      self.tasks.append(t)
      return httpx.Response(201, json=t)
    if request.method == "PUT" and parts[0] == "tasks":
      t = self._find(parts[1])
      if t is None:
        return httpx.Response(404, json={"detail": "Task not found"})
      for key in ("title", "description", "status", "completed", "pinned"):
        if key in body:
          t[key] = body[key]
      return httpx.Response(200, json=t)
    if request.method == "PATCH" and parts[-1] == "pin":
      t = self._find(parts[1])
      if t is None:
        return httpx.Response(404, json={"detail": "Task not found"})
      t["pinned"] = not t["pinned"]
      return httpx.Response(200, json={"pinned": t["pinned"], "message": "ok"})
    if request.method == "DELETE" and parts[0] == "tasks":
      t = self._find(parts[1])
      if t is None:
        return httpx.Response(404, json={"detail": "Task not found"})
      self.tasks.remove(t)
      return httpx.Response(200, json={"message": "Task deleted"})
    return httpx.Response(404, json={"detail": "Not found"})

  def methods(self) -> list[str]:
    return [m for m, _, _ in self.calls]
