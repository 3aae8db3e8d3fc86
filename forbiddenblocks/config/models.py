"""
Pydantic-based configuration models for ForbiddenBlocks.

Every setting can be supplied through environment variables (or a .env file)
using the prefix of its section, e.g. FORBIDDENBLOCKS_STORAGE_RUN_DIRECTORY.
"""

import json
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_BLOCK_ALLOWLIST = [
    "minecraft:crafting_table",
    "minecraft:anvil",
    "minecraft:chipped_anvil",
    "minecraft:damaged_anvil",
    "minecraft:grindstone",
    "minecraft:stonecutter",
    "minecraft:cartography_table",
    "minecraft:fletching_table",
    "minecraft:lever",
    "minecraft:note_block",
    "#minecraft:doors",
    "#minecraft:trapdoors",
    "#minecraft:fence_gates",
    "#minecraft:buttons",
    "#forbiddenblocks:block_entities",
]

DEFAULT_ENTITY_ALLOWLIST = [
    "minecraft:item_frame",
    "minecraft:glow_item_frame",
    "#forbiddenblocks:living",
]


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a value from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, list | tuple | set):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class StorageConfig(BaseSettings):
    """Where per-scope files and the global settings file live."""

    run_directory: str = Field(default=".", description="Game run directory all other paths are relative to")
    worlds_dir: str = Field(default="config/forbiddenblocks/worlds", description="Directory of per-scope files")
    settings_file: str = Field(default="config/forbiddenblocks.json", description="Global settings file")

    @field_validator("worlds_dir", "settings_file")
    @classmethod
    def validate_relative_path(cls, v: str) -> str:
        """Reject empty paths."""
        if not v or not v.strip():
            logger.error("Storage path validation failed - empty path")
            raise ValueError("Storage paths cannot be empty")
        return v

    @property
    def worlds_path(self) -> Path:
        """Absolute directory holding one JSON file per scope."""
        return Path(self.run_directory) / self.worlds_dir

    @property
    def settings_path(self) -> Path:
        """Absolute path of the global settings file."""
        return Path(self.run_directory) / self.settings_file

    model_config = {"env_prefix": "FORBIDDENBLOCKS_STORAGE_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str | None = Field(default=None, description="Logging environment (auto-detected if unset)")
    level: str = Field(default="INFO", description="Log level")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="10MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str | None) -> str | None:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "production"]
        if v is not None and v not in valid_environments:
            logger.error("Invalid logging environment", environment=v, valid_environments=valid_environments)
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("rotation_backup_count")
    @classmethod
    def validate_backup_count(cls, v: int) -> int:
        """Validate backup count is not negative."""
        if v < 0:
            raise ValueError("Backup count must not be negative")
        return v

    model_config = {"env_prefix": "FORBIDDENBLOCKS_LOGGING_", "case_sensitive": False, "extra": "ignore"}


class InteractionConfig(BaseSettings):
    """
    Targets that may still be used while holding a forbidden item.

    Entries are either exact type ids ("minecraft:lever") or "#"-prefixed tags
    matched against the tags the event layer reports for the target.
    """

    block_allowlist: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_BLOCK_ALLOWLIST))
    entity_allowlist: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_ENTITY_ALLOWLIST))
    block_exclusions: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["minecraft:jukebox"])
    harvest_ripe_crops: bool = Field(default=True, description="Allow harvesting ripe berry bushes and cave vines")

    @field_validator("block_allowlist", "entity_allowlist", "block_exclusions", mode="before")
    @classmethod
    def parse_allowlist(cls, v: Any) -> list[str]:
        """Accept JSON arrays or comma separated strings."""
        return _parse_env_list(v)

    model_config = {"env_prefix": "FORBIDDENBLOCKS_INTERACTION_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via get_config() singleton function.
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    interaction: InteractionConfig = Field(default_factory=InteractionConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}
