from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import create_board, create_task, register


@pytest.mark.anyio
async def test_create_board_requires_name(client: AsyncClient) -> None:
  headers = await register(client)
  r = await client.post("/boards", json={}, headers=headers)
  assert r.status_code == 400, r.text
  r = await client.post("/boards", json={"name": "   "}, headers=headers)
  assert r.status_code == 400, r.text


@pytest.mark.anyio
async def test_boards_are_owner_scoped(client: AsyncClient) -> None:
  alice = await register(client, name="Alice")
  bob = await register(client, name="Bob")
  b = await create_board(client, alice, "Alice board")

  mine = (await client.get("/boards", headers=alice)).json()
  assert [x["name"] for x in mine] == ["Alice board"]
  assert (await client.get("/boards", headers=bob)).json() == []

  # Someone else's board behaves as absent.
  assert (await client.get(f"/tasks/{b['id']}", headers=bob)).status_code == 404
  assert (await client.patch(f"/boards/{b['id']}/archive", headers=bob)).status_code == 404
  assert (await client.delete(f"/boards/{b['id']}", headers=bob)).status_code == 404


@pytest.mark.anyio
async def test_list_boards_newest_first(client: AsyncClient) -> None:
  headers = await register(client)
  for name in ("First", "Second", "Third"):
    await create_board(client, headers, name)
  names = [b["name"] for b in (await client.get("/boards", headers=headers)).json()]
  assert names == ["Third", "Second", "First"]


@pytest.mark.anyio
async def test_archive_and_restore(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  assert b["archived"] is False

  r = await client.patch(f"/boards/{b['id']}/archive", headers=headers)
  assert r.status_code == 200, r.text
  assert r.json()["archived"] is True

  r = await client.patch(f"/boards/{b['id']}/restore", headers=headers)
  assert r.status_code == 200, r.text
  assert r.json()["archived"] is False


@pytest.mark.anyio
async def test_delete_board_removes_its_tasks(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  t = await create_task(client, headers, b["id"], "Doomed")

  r = await client.delete(f"/boards/{b['id']}", headers=headers)
  assert r.status_code == 200, r.text
  assert "message" in r.json()
  assert (await client.get(f"/tasks/{b['id']}", headers=headers)).status_code == 404
  assert (await client.put(f"/tasks/{t['id']}", json={"title": "x"}, headers=headers)).status_code == 404


@pytest.mark.anyio
@pytest.mark.parametrize("name", ["todo", "inprogress", "done"])
async def test_builtin_columns_cannot_be_deleted(client: AsyncClient, name: str) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  await create_task(client, headers, b["id"], "Keep me", status=name)

  r = await client.delete(f"/boards/{b['id']}/custom-column/{name}", headers=headers)
  assert r.status_code == 400, r.text

  tasks = (await client.get(f"/tasks/{b['id']}", headers=headers)).json()
  assert [t["title"] for t in tasks] == ["Keep me"]


@pytest.mark.anyio
async def test_delete_custom_column_deletes_only_its_tasks(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  await create_task(client, headers, b["id"], "Blocked 1", status="blocked")
  await create_task(client, headers, b["id"], "Blocked 2", status="blocked")
  await create_task(client, headers, b["id"], "Still todo")

  r = await client.delete(f"/boards/{b['id']}/custom-column/blocked", headers=headers)
  assert r.status_code == 200, r.text
  assert r.json()["deletedTasks"] == 2

  tasks = (await client.get(f"/tasks/{b['id']}", headers=headers)).json()
  assert [t["title"] for t in tasks] == ["Still todo"]


@pytest.mark.anyio
async def test_board_mutations_are_audited(client: AsyncClient) -> None:
  headers = await register(client)
  b = await create_board(client, headers)
  await client.patch(f"/boards/{b['id']}/archive", headers=headers)

  r = await client.get("/audit", params={"boardId": b["id"]}, headers=headers)
  assert r.status_code == 200, r.text
  events = [e["eventType"] for e in r.json()]
  assert "board.created" in events
  assert "board.archived" in events
