"""Configuration management for jdb-helper."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# JSON file in the working directory whose items override the defaults
CONFIG_FILE = ".jdb-helper.json"


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.jdb-helper/.env
    3. Package directory (where this file is located)
    """
    if os.path.exists(".env"):
        return ".env"

    user_env = Path.home() / ".jdb-helper" / ".env"
    if user_env.exists():
        return str(user_env)

    package_dir = Path(__file__).parent.parent
    package_env = package_dir / ".env"
    if package_env.exists():
        return str(package_env)

    return None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="JDB_HELPER_",
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    # Dialect and schema
    dbms: Literal["duckdb", "snowflake"] = Field(
        default="duckdb",
        description="Database dialect to introspect"
    )
    db_schema: str = Field(
        default="main",
        min_length=1,
        description="Schema whose tables are classified"
    )

    # DuckDB
    duckdb_path: str = Field(
        default=":memory:",
        min_length=1,
        description="Path to the .duckdb file"
    )

    # Snowflake (each falls back to its SNOWFLAKE_* variable when unset)
    snowflake_account: Optional[str] = Field(default=None, description="Snowflake account")
    snowflake_user: Optional[str] = Field(default=None, description="Snowflake user")
    snowflake_password: Optional[str] = Field(default=None, description="Snowflake password")
    snowflake_warehouse: Optional[str] = Field(default=None, description="Snowflake warehouse")
    snowflake_database: Optional[str] = Field(default=None, description="Snowflake database")
    snowflake_role: Optional[str] = Field(default=None, description="Snowflake role")

    # Column extraction
    strict_columns: bool = Field(
        default=False,
        description="Fail instead of warning when column rows reference unrequested tables"
    )

    # Output
    output_file: Optional[str] = Field(
        default=None,
        description="Write JSON results to this file instead of stdout"
    )

    # Run logging configuration
    run_logging_enabled: bool = Field(
        default=True,
        description="Enable database logging for introspection runs"
    )
    run_logging_db_path: Optional[str] = Field(
        default=None,
        description="Path to run log database file (default: ~/.jdb-helper/runs.db)"
    )
    run_logging_retention_days: int = Field(
        default=30,
        ge=1,
        description="Number of days to retain run log entries"
    )


def load_config_file(settings: Settings, path: str = CONFIG_FILE) -> Tuple[Settings, Dict[str, Any]]:
    """Merge a JSON configuration file over the given settings.

    Unknown keys and values failing validation are reported and skipped.
    A missing or unreadable file leaves the settings unchanged.

    Args:
        settings: Settings to start from (not modified)
        path: Path to the JSON configuration file

    Returns:
        Tuple of (merged settings, dict of the items that were applied)
    """
    try:
        with open(path, encoding="utf-8") as f:
            config = json.load(f)
    except FileNotFoundError:
        logger.info("No configuration file found at %s, using defaults", path)
        return settings, {}
    except (OSError, ValueError) as e:
        logger.error("Could not read configuration file %s: %s", path, e)
        return settings, {}

    if not isinstance(config, dict):
        logger.error("Configuration file %s must contain a JSON object", path)
        return settings, {}

    merged = settings.model_copy()
    applied: Dict[str, Any] = {}
    for key, value in config.items():
        if key not in Settings.model_fields:
            logger.warning("%s is defined in %s but is not a valid configuration item", key, path)
            continue
        try:
            setattr(merged, key, value)
        except ValidationError as e:
            reason = e.errors()[0]["msg"] if e.errors() else str(e)
            logger.warning('%s "%s": "%s" %s', path, key, value, reason)
            continue
        applied[key] = getattr(merged, key)

    logger.info("%s has been loaded", path)
    return merged, applied


# Global settings instance
settings = Settings()
