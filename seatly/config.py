"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILE_NAME = "seatly.yaml"


class DefaultsConfig(BaseModel):
    """Default values used when CLI options are omitted."""
    booking_minutes: int = 30
    availability_hours: int = 8
    recurrence_weeks: int = 4

    @field_validator("booking_minutes", "availability_hours", "recurrence_weeks")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure defaults are positive."""
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    data_file: Path = Path("seatly-data.json")
    user_id: int = 1  # Identity supplied to bookings; authentication is external
    log_level: str = "WARNING"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept standard logging level names, case-insensitively."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a {CONFIG_FILE_NAME} file. See {CONFIG_FILE_NAME}.example for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if not config.data_file.is_absolute():
            # Relative data paths are anchored at the config file
            config = config.model_copy(update={"data_file": config_path.parent / config.data_file})
        return config

    @classmethod
    def load_or_default(cls, config_path: Path) -> "AppConfig":
        """Load ``config_path`` if it exists, otherwise return defaults."""
        if config_path.exists():
            return cls.load_from_yaml(config_path)
        return cls()


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for seatly.yaml in current directory
    config_path = Path.cwd() / CONFIG_FILE_NAME

    if not config_path.exists():
        # Try in the project root (parent of seatly/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / CONFIG_FILE_NAME

    return config_path
