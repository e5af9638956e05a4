"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pops.exceptions import ConfigurationError


class Settings(BaseSettings):
    """POPS application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # Stores
    database_path: Path = Path("./data/pops.db")
    envs_dir: Path | None = None
    sqlite_busy_timeout_ms: int = Field(default=5000, ge=0)

    # Notion
    notion_token: str = ""
    notion_api_url: str = "https://api.notion.com/v1"
    notion_version: str = "2022-06-28"
    notion_page_size: int = Field(default=100, ge=1, le=100)
    notion_page_delay_seconds: float = Field(default=0.35, ge=0)
    notion_timeout_seconds: float = Field(default=30.0, gt=0)

    # Source databases
    notion_entities_db: str = ""
    notion_balance_sheet_db: str = ""
    notion_inventory_db: str = ""
    notion_budget_db: str = ""
    notion_wish_list_db: str = ""

    # Sync scheduling
    sync_enabled: bool = True
    sync_interval_seconds: int = Field(default=0, ge=0)
    sync_run_ttl_seconds: int = Field(default=3600, ge=1)

    # Named environments
    env_sweep_interval_seconds: float = Field(default=30.0, gt=0)
    env_max_ttl_seconds: int = Field(default=7 * 24 * 3600, ge=1)

    @property
    def resolved_envs_dir(self) -> Path:
        """Directory holding one SQLite file per named environment."""
        if self.envs_dir is not None:
            return self.envs_dir
        return self.database_path.parent / "envs"

    def source_database_ids(self) -> dict[str, str]:
        """Notion database id for each mirrored kind."""
        return {
            "entities": self.notion_entities_db,
            "transactions": self.notion_balance_sheet_db,
            "inventory": self.notion_inventory_db,
            "budgets": self.notion_budget_db,
            "wish_list": self.notion_wish_list_db,
        }

    def validate_sync_credentials(self) -> None:
        """Fail fast when the Notion mirror cannot possibly run."""
        missing: list[str] = []
        if not self.notion_token:
            missing.append("NOTION_TOKEN")
        for kind, database_id in self.source_database_ids().items():
            if not database_id:
                missing.append(f"Notion database id for {kind}")
        if missing:
            joined = "; ".join(missing)
            raise ConfigurationError(f"Missing sync configuration: {joined}")
