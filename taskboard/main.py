from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from sqlalchemy import delete

from taskboard.config import settings
from taskboard.db import SessionLocal
from taskboard.logs import configure_logging
from taskboard.models import Session as DbSession
from taskboard.routers.ai import router as ai_router
from taskboard.routers.audit import router as audit_router
from taskboard.routers.auth import router as auth_router
from taskboard.routers.boards import router as boards_router
from taskboard.routers.tasks import router as tasks_router
from taskboard.security import is_placeholder_secret

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
  title="Taskboard API",
  version=settings.app_version,
  docs_url="/docs" if settings.api_docs_enabled else None,
  redoc_url="/redoc" if settings.api_docs_enabled else None,
  openapi_url="/openapi.json" if settings.api_docs_enabled else None,
)

app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_origin_regex=settings.cors_origin_regex,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(auth_router)
app.include_router(boards_router)
app.include_router(tasks_router)
app.include_router(ai_router)
app.include_router(audit_router)


@app.middleware("http")
async def _security_headers_middleware(request, call_next):
  response = await call_next(request)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  response.headers.setdefault("X-Frame-Options", "DENY")
  response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}


async def _purge_expired_sessions() -> int:
  async with SessionLocal() as db:
    res = await db.execute(delete(DbSession).where(DbSession.expires_at < datetime.now(timezone.utc)))
    await db.commit()
    return int(res.rowcount or 0)


@app.on_event("startup")
async def _startup() -> None:
  if settings.is_test_database():
    return
  if is_placeholder_secret(settings.app_secret):
    raise RuntimeError("APP_SECRET is required and must not be a placeholder")
  purged = await _purge_expired_sessions()
  logger.info("taskboard api %s started (expired sessions purged: %d)", settings.app_version, purged)
