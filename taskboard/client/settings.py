from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
  model_config = SettingsConfigDict(env_prefix="TASKBOARD_", env_file=".env", extra="ignore")

  api_base_url: str = "http://localhost:8000"
  request_timeout_seconds: float = 10.0

  # Direct OpenAI-compatible endpoint, tried after the gateway.
  inference_base_url: str | None = None
  inference_api_key: str | None = None
  inference_model: str = "gpt-4o-mini"

  preferences_path: str = "~/.taskboard/preferences.json"


def normalize_base_url(base_url: str) -> str:
  b = (base_url or "").strip().rstrip("/")
  if not b:
    raise ValueError("base url is required")
  if not (b.startswith("http://") or b.startswith("https://")):
    b = "https://" + b
  return b
