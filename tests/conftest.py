from __future__ import annotations

import os
import uuid

if "test" not in os.environ.get("DATABASE_URL", "").rsplit("/", 1)[-1]:
  os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./taskboard_test.db"
os.environ.pop("REDIS_URL", None)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete

from taskboard.client.gateway import GatewayClient
from taskboard.config import settings
from taskboard.db import SessionLocal, engine
from taskboard.main import app
from taskboard.models import AuditEvent, Base, Board, Session, Task, User
from taskboard.rate_limit import limiter

_schema_ready = False


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


async def _reset_db() -> None:
  global _schema_ready
  limiter.reset_prefix("auth:")
  limiter.reset_prefix("ai:")
  if not _schema_ready:
    async with engine.begin() as conn:
      await conn.run_sync(Base.metadata.create_all)
    _schema_ready = True
  async with SessionLocal() as db:
    await db.execute(delete(AuditEvent))
    await db.execute(delete(Task))
    await db.execute(delete(Board))
    await db.execute(delete(Session))
    await db.execute(delete(User))
    await db.commit()
  await engine.dispose()


@pytest.fixture(autouse=True)
async def _clean_between_tests(anyio_backend: str) -> None:
  if not settings.is_test_database():
    raise RuntimeError(
      "Refusing to run destructive tests against non-test DB. "
      "Set DATABASE_URL to a *_test database (e.g. taskboard_test.db)."
    )
  await _reset_db()
  yield
  await _reset_db()


@pytest.fixture
async def client() -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


async def register(client: AsyncClient, *, email: str | None = None, name: str = "Ada", password: str = "secret123") -> dict[str, str]:
  """Registers a fresh user and returns bearer headers for it."""
  email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
  res = await client.post("/auth/register", json={"name": name, "email": email, "password": password})
  assert res.status_code == 201, res.text
  return {"Authorization": f"Bearer {res.json()['token']}"}


async def create_board(client: AsyncClient, headers: dict[str, str], name: str = "Launch") -> dict:
  res = await client.post("/boards", json={"name": name}, headers=headers)
  assert res.status_code == 201, res.text
  return res.json()


async def create_task(client: AsyncClient, headers: dict[str, str], board_id: str, title: str, **fields) -> dict:
  res = await client.post("/tasks", json={"title": title, "board": board_id, **fields}, headers=headers)
  assert res.status_code == 201, res.text
  return res.json()


@pytest.fixture
async def gateway(client: AsyncClient) -> GatewayClient:
  """A signed-in GatewayClient talking to the app in-process."""
  headers = await register(client)
  token = headers["Authorization"].split(" ", 1)[1]
  return GatewayClient("http://localhost", token=token, transport=ASGITransport(app=app))
