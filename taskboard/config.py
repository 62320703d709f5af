from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "sqlite+aiosqlite:///./taskboard.db"
  app_secret: str = "dev-secret-change-me"
  app_version: str = "0.1.0"
  build_sha: str = "dev"
  api_docs_enabled: bool = True
  log_level: str = "INFO"

  session_ttl_days: int = 14

  rate_limit_login_ip_per_minute: int = 60
  rate_limit_login_email_per_minute: int = 20
  rate_limit_ai_generate_ip_per_minute: int = 30
  redis_url: str | None = None

  cors_origins: str = "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
  cors_origin_regex: str = r"^https://[a-z0-9-]+\.(vercel\.app|netlify\.app|onrender\.com)$"
  trusted_hosts: str = "localhost,127.0.0.1,0.0.0.0,api,testserver"

  ai_provider: str = "local"  # local | openai
  openai_api_key: str | None = None
  openai_base_url: str = "https://api.openai.com/v1"
  ai_model: str = "gpt-4o-mini"
  ai_timeout_seconds: float = 10.0
  ai_generate_requires_auth: bool = False

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def trusted_host_list(self) -> list[str]:
    return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]

  def is_test_database(self) -> bool:
    db_name = self.database_url.rsplit("/", 1)[-1]
    return "test" in db_name


settings = Settings()
