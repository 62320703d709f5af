from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

from taskboard.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_PREFIX = "tb_"
PLACEHOLDER_SECRETS = {"dev-secret-change-me", "replace_with_strong_random_secret"}


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
  return pwd_context.verify(password, password_hash)


def new_session_token() -> str:
  return TOKEN_PREFIX + secrets.token_urlsafe(32)


def session_token_hash(token: str) -> str:
  # Keyed hash so DB leaks don't allow offline token matching.
  key = (settings.app_secret or "").encode("utf-8")
  msg = (token or "").strip().encode("utf-8")
  return hmac.new(key, msg, hashlib.sha256).hexdigest()


def new_session_expires_at() -> datetime:
  return datetime.now(timezone.utc) + timedelta(days=settings.session_ttl_days)


def is_placeholder_secret(value: str | None) -> bool:
  return not value or value.strip().lower() in PLACEHOLDER_SECRETS
