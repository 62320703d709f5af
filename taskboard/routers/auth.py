from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.audit import write_audit
from taskboard.config import settings
from taskboard.deps import bearer_token, client_ip, get_current_user, get_db
from taskboard.models import Session as DbSession, User
from taskboard.rate_limit import limiter
from taskboard.schemas import AuthOut, LoginIn, MessageOut, RegisterIn, UserOut
from taskboard.security import hash_password, new_session_expires_at, new_session_token, session_token_hash, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_out(u: User) -> UserOut:
  return UserOut(id=u.id, email=u.email, name=u.name)


def rate_limit_or_429(*, key: str, limit: int, window_seconds: int) -> None:
  allowed, retry_after = limiter.hit(key, limit=limit, window_seconds=window_seconds)
  if allowed:
    return
  raise HTTPException(
    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    detail={"code": "rate_limited", "message": "Too many requests", "retryAfterSeconds": retry_after},
    headers={"Retry-After": str(retry_after)},
  )


async def _open_session(db: AsyncSession, u: User, ip: str | None) -> AuthOut:
  token = new_session_token()
  s = DbSession(user_id=u.id, token_hash=session_token_hash(token), created_ip=ip, expires_at=new_session_expires_at())
  db.add(s)
  return AuthOut(token=token, expiresAt=s.expires_at, user=_user_out(u))


@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterIn, request: Request, db: AsyncSession = Depends(get_db)) -> AuthOut:
  email = payload.email.strip().lower()
  name = payload.name.strip()
  if not name or "@" not in email:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name and a valid email are required")
  res = await db.execute(select(User.id).where(User.email == email))
  if res.scalar_one_or_none():
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

  u = User(email=email, name=name, password_hash=hash_password(payload.password))
  db.add(u)
  await db.flush()
  out = await _open_session(db, u, client_ip(request))
  await write_audit(db, event_type="auth.registered", entity_type="User", entity_id=u.id, actor_id=u.id, payload={"email": email})
  await db.commit()
  return out


@router.post("/login", response_model=AuthOut)
async def login(payload: LoginIn, request: Request, db: AsyncSession = Depends(get_db)) -> AuthOut:
  ip = client_ip(request) or "unknown"
  email = (payload.email or "").strip().lower()
  rate_limit_or_429(key=f"auth:login:ip:{ip}", limit=int(settings.rate_limit_login_ip_per_minute), window_seconds=60)
  if email:
    rate_limit_or_429(key=f"auth:login:email:{email}", limit=int(settings.rate_limit_login_email_per_minute), window_seconds=60)

  res = await db.execute(select(User).where(User.email == email))
  u = res.scalar_one_or_none()
  if not u or not verify_password(payload.password, u.password_hash):
    await write_audit(db, event_type="auth.login.failed", entity_type="Auth", entity_id=None, payload={"email": email, "ip": ip})
    await db.commit()
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

  out = await _open_session(db, u, ip)
  await write_audit(db, event_type="auth.login", entity_type="User", entity_id=u.id, actor_id=u.id, payload={"ip": ip})
  await db.commit()
  return out


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> UserOut:
  return _user_out(user)


@router.post("/logout", response_model=MessageOut)
async def logout(request: Request, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> MessageOut:
  token = bearer_token(request)
  res = await db.execute(select(DbSession).where(DbSession.token_hash == session_token_hash(token or ""), DbSession.user_id == user.id))
  s = res.scalar_one_or_none()
  if s and s.revoked_at is None:
    s.revoked_at = datetime.now(timezone.utc)
  await write_audit(db, event_type="auth.logout", entity_type="User", entity_id=user.id, actor_id=user.id)
  await db.commit()
  return MessageOut(message="Logged out")
