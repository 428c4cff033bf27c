"""Configuration management for campaign-cache."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["test", "dev", "user"]
Build = Literal["debug", "release"]

DATA_DIR_NAME = ".campaign-cache"


class CacheConfig(BaseSettings):
    """Settings for the local cache, loaded from environment variables / .env file."""

    env: Environment = Field(default="user", description="Environment name")

    build: Build = Field(
        default="release",
        description="Build configuration. Destructive conveniences are only allowed in debug.",
    )

    erase_database_on_schema_change: bool = Field(
        default=False,
        description="Wipe and recreate the database when migrations no longer match the "
        "stored schema. Debug builds only.",
    )

    # Shared container directory, readable by the widget process as well
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / DATA_DIR_NAME,
        description="Directory holding the database and log files",
    )

    database_name: str = Field(default="cache.db", description="SQLite database file name")

    # The well-known fundraising event mirrored by the cache
    event_slug: str = Field(default="relay-fm-for-st-jude-2022")
    cause_slug: str = Field(default="st-jude-children-s-research-hospital")

    api_url: str = Field(
        default="https://api.tiltify.com/",
        description="GraphQL endpoint of the fundraising platform",
    )
    api_timeout: float = Field(default=30.0, description="Seconds before a remote fetch gives up")

    log_level: str = "INFO"
    log_to_file: bool = Field(default=True, description="Write logs to data_dir/campaign-cache.log")
    log_to_stdout: bool = Field(default=False, description="Write logs to stderr")

    model_config = SettingsConfigDict(
        env_prefix="CAMPAIGN_CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_erase_policy(self) -> "CacheConfig":
        if self.erase_database_on_schema_change and self.build != "debug":
            raise ValueError(
                "erase_database_on_schema_change can only be enabled in a debug build"
            )
        return self

    @property
    def database_path(self) -> Path:
        """Get SQLite database path, creating the data directory if needed."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return self.data_dir / self.database_name

    @property
    def log_path(self) -> Optional[Path]:
        if not self.log_to_file:
            return None
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return self.data_dir / "campaign-cache.log"

    @property
    def is_test_env(self) -> bool:
        return self.env == "test"
