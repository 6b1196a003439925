"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Prefix: REPORTFLOW_
    """

    model_config = SettingsConfigDict(
        env_prefix="REPORTFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Document shape
    schema_version: str = Field(
        default="1.0.0",
        description="Schema version written into every report definition",
    )

    # Report store (SQLAlchemy)
    database_url: str = Field(
        default="sqlite:///./reportflow.db",
        description="SQLAlchemy database URL for the report store",
    )

    # Defaults for new definitions
    default_owner_id: str = Field(default="current-user")
    default_owner_name: str = Field(default="Current User")
    default_execute_as: str = Field(
        default="caller",
        description="Security context for execution: caller, owner or systemuser",
    )
    default_allowed_roles: list[str] = Field(default_factory=lambda: ["Report Generator"])

    # Execution limits (carried into definitions, never inferred from the graph)
    page_size: int = Field(default=5000)
    preview_rows: int = Field(default=100)
    max_expanded_rows: int = Field(default=200_000)
    max_columns_per_sheet: int = Field(default=100)
    max_link_depth: int = Field(default=3)
    default_child_top: int = Field(default=10)

    # Import/export
    export_version: str = Field(default="1.0.0")
    exported_by: str = Field(default="Report Builder User")

    # Logging
    log_level: str = Field(default="WARNING")
    log_format: str = Field(default="console")  # 'json' or 'console'


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
