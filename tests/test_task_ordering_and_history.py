from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

from conftest import create_board, create_task, register


async def _titles(client: AsyncClient, headers: dict, board_id: str, status: str) -> list[str]:
  tasks = (await client.get(f"/tasks/{board_id}", headers=headers)).json()
  return [t["title"] for t in tasks if t["status"] == status]


@pytest.mark.anyio
async def test_create_task_requires_title_and_board(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  r = await client.post("/tasks", json={"board": b["id"]}, headers=headers)
  assert r.status_code == 400, r.text
  r = await client.post("/tasks", json={"title": "  ", "board": b["id"]}, headers=headers)
  assert r.status_code == 400, r.text
  r = await client.post("/tasks", json={"title": "No board"}, headers=headers)
  assert r.status_code == 400, r.text


@pytest.mark.anyio
async def test_create_task_defaults(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  t = await create_task(
    client,
    headers,
    b["id"],
    "Write copy",
    timezone="Europe/Berlin",
    subtasks=[{"title": "Outline", "subtasks": [{"title": "Intro"}]}],
  )
  assert t["status"] == "todo"
  assert t["pinned"] is False
  assert t["completed"] is False
  assert t["position"] == 0
  assert t["history"][0]["from"] == "created"
  assert t["history"][0]["to"] == "todo"
  assert t["history"][0]["timezone"] == "Europe/Berlin"
  assert t["subtasks"][0]["id"]
  assert t["subtasks"][0]["subtasks"][0]["title"] == "Intro"


@pytest.mark.anyio
async def test_update_malformed_and_unknown_ids(client: AsyncClient) -> None:
  headers = await register(client)
  r = await client.put("/tasks/not-a-uuid", json={"title": "x"}, headers=headers)
  assert r.status_code == 400, r.text
  r = await client.put(f"/tasks/{uuid.uuid4()}", json={"title": "x"}, headers=headers)
  assert r.status_code == 404, r.text


@pytest.mark.anyio
async def test_other_users_task_is_not_found(client: AsyncClient) -> None:
  alice = await register(client, name="Alice")
  bob = await register(client, name="Bob")
  b = await create_board(client, alice)
  t = await create_task(client, alice, b["id"], "Private")
  assert (await client.put(f"/tasks/{t['id']}", json={"title": "mine"}, headers=bob)).status_code == 404
  assert (await client.patch(f"/tasks/{t['id']}/pin", headers=bob)).status_code == 404
  assert (await client.delete(f"/tasks/{t['id']}", headers=bob)).status_code == 404
  assert (await client.post("/tasks", json={"title": "Sneaky", "board": b["id"]}, headers=bob)).status_code == 404


@pytest.mark.anyio
async def test_partial_update_only_touches_given_fields(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  t = await create_task(client, headers, b["id"], "Original", description="keep me")

  r = await client.put(f"/tasks/{t['id']}", json={"completed": True}, headers=headers)
  assert r.status_code == 200, r.text
  body = r.json()
  assert body["completed"] is True
  assert body["title"] == "Original"
  assert body["description"] == "keep me"
  assert len(body["history"]) == 1

  r = await client.put(f"/tasks/{t['id']}", json={"title": ""}, headers=headers)
  assert r.status_code == 400, r.text


@pytest.mark.anyio
async def test_pinned_tasks_list_first(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  await create_task(client, headers, b["id"], "A")
  await create_task(client, headers, b["id"], "B")
  c = await create_task(client, headers, b["id"], "C")

  r = await client.patch(f"/tasks/{c['id']}/pin", headers=headers)
  assert r.status_code == 200, r.text
  assert r.json()["pinned"] is True
  assert await _titles(client, headers, b["id"], "todo") == ["C", "A", "B"]

  r = await client.patch(f"/tasks/{c['id']}/pin", headers=headers)
  assert r.json()["pinned"] is False
  assert await _titles(client, headers, b["id"], "todo") == ["A", "B", "C"]


@pytest.mark.anyio
async def test_status_change_appends_history_and_goes_last(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  await create_task(client, headers, b["id"], "Already done", status="done")
  t = await create_task(client, headers, b["id"], "Ship it")

  r = await client.put(f"/tasks/{t['id']}", json={"status": "done", "timezone": "Not/AZone"}, headers=headers)
  assert r.status_code == 200, r.text
  history = r.json()["history"]
  assert [(h["from"], h["to"]) for h in history] == [("created", "todo"), ("todo", "done")]
  assert history[-1]["timezone"] == "UTC"
  assert await _titles(client, headers, b["id"], "done") == ["Already done", "Ship it"]
  assert await _titles(client, headers, b["id"], "todo") == []


@pytest.mark.anyio
async def test_position_reorders_within_column(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  await create_task(client, headers, b["id"], "A")
  await create_task(client, headers, b["id"], "B")
  c = await create_task(client, headers, b["id"], "C")

  r = await client.put(f"/tasks/{c['id']}", json={"status": "todo", "position": 0}, headers=headers)
  assert r.status_code == 200, r.text
  assert r.json()["position"] == 0
  assert await _titles(client, headers, b["id"], "todo") == ["C", "A", "B"]


@pytest.mark.anyio
async def test_position_across_columns_respects_pinned_first(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  pinned = await create_task(client, headers, b["id"], "Pinned done", status="done")
  await client.patch(f"/tasks/{pinned['id']}/pin", headers=headers)
  await create_task(client, headers, b["id"], "Plain done", status="done")
  t = await create_task(client, headers, b["id"], "Mover")

  # Asking for the top slot still lands after the pinned task.
  r = await client.put(f"/tasks/{t['id']}", json={"status": "done", "position": 0}, headers=headers)
  assert r.status_code == 200, r.text
  assert await _titles(client, headers, b["id"], "done") == ["Pinned done", "Mover", "Plain done"]


@pytest.mark.anyio
async def test_delete_task(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  t = await create_task(client, headers, b["id"], "Bye")
  r = await client.delete(f"/tasks/{t['id']}", headers=headers)
  assert r.status_code == 200, r.text
  assert r.json()["message"]
  assert await _titles(client, headers, b["id"], "todo") == []
  assert (await client.delete(f"/tasks/{t['id']}", headers=headers)).status_code == 404

  events = (await client.get("/audit", params={"boardId": b["id"]}, headers=headers)).json()
  deleted = [e for e in events if e["eventType"] == "task.deleted"]
  assert deleted and deleted[0]["taskId"] == t["id"]
