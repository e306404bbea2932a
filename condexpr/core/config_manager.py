"""
Configuration management for condexpr.

Handles loading, validation, and access to configuration settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Supported log output formats."""
    JSON = "json"
    TEXT = "text"


class EvaluatorConfig(BaseModel):
    """Condition evaluator settings."""
    max_depth: int = Field(
        default=64,
        ge=1,
        le=256,
        description="Maximum nesting depth of an expression tree"
    )
    nested_paths: bool = Field(
        default=True,
        description="Resolve dotted/indexed field paths (a.b[0]) in addition to top-level keys"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.WARNING
    format: LogFormat = LogFormat.TEXT
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = Field(default=5, ge=0)

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @field_validator("rotation_size")
    @classmethod
    def validate_rotation_size(cls, v: str) -> str:
        """Validate rotation size format (e.g., 10MB)."""
        from .logging_config import parse_size

        try:
            parse_size(v)
        except ValueError:
            raise ValueError(f"Invalid rotation size: {v!r}")
        return v


class CondExprConfig(BaseModel):
    """Main condexpr configuration schema."""

    evaluator: EvaluatorConfig = Field(default_factory=EvaluatorConfig)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class ConfigManager:
    """
    Manages condexpr configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (CONDEXPR_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[CondExprConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> CondExprConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            Validated CondExprConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.debug(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.debug(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            config_dict = self._merge_configs(config_dict, cli_overrides)
            logger.debug(f"Applied {len(cli_overrides)} CLI argument overrides")

        try:
            self._config = CondExprConfig(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise
        logger.debug(f"Active configuration: {json.dumps(self._config.model_dump())}")
        return self._config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        if max_depth := os.getenv("CONDEXPR_MAX_DEPTH"):
            config.setdefault("evaluator", {})["max_depth"] = int(max_depth)
        if nested_paths := os.getenv("CONDEXPR_NESTED_PATHS"):
            config.setdefault("evaluator", {})["nested_paths"] = (
                nested_paths.lower() in ['true', '1', 'yes']
            )

        if log_level := os.getenv("CONDEXPR_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_format := os.getenv("CONDEXPR_LOG_FORMAT"):
            config.setdefault("logging", {})["format"] = log_format.lower()
        if log_file := os.getenv("CONDEXPR_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def get_config(self) -> CondExprConfig:
        """
        Get the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> CondExprConfig:
        """Reload configuration from the same sources."""
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
