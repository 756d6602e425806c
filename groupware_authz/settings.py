from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """
    Settings of the permission service, read from ``AUTHZ_*`` env vars.

    - ``AUTHZ_DB_URL``: groupware database holding contacts, projects,
      documents and their ACL table (default: ``groupware.db`` next to the
      package, seeded on startup)
    - ``AUTHZ_CONFIG_PATH``: YAML file with the ``authz:`` section (loop
      budgets, fallback policy, entity -> handler overrides)
    - ``AUTHZ_LOG_LEVEL``: level of the ``groupware_authz`` loggers
    """

    model_config = SettingsConfigDict(env_prefix="AUTHZ_", extra="ignore")

    db_url: str | None = None
    config_path: str | None = None
    log_level: str = "INFO"

    def resolved_db_url(self) -> str:
        return self.db_url or f"sqlite:///{REPO_ROOT / 'groupware.db'}"

    def resolved_config_path(self) -> Path:
        if self.config_path:
            return Path(self.config_path)
        return REPO_ROOT / "config" / "authz_config.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
