"""Configuration utilities.

This module loads application configuration with the following rules:
- Primary source: `formflow_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("formflow_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///:memory:"
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str = DEFAULT_DSN

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class EngineSettings(BaseModel):
    """Visibility engine tunables."""

    flow_key_separator: str = "_"
    completion_flow_states: List[str] = Field(default_factory=lambda: ["login_complete", "verified_user"])
    max_reentrancy_depth: int = Field(default=32, gt=0)

    @field_validator("flow_key_separator")
    @classmethod
    def separator_must_be_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("engine.flow_key_separator must be a non-empty string")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = str(v).strip().upper()
        if upper not in allowed:
            raise ValueError(f"logging.level must be one of {sorted(allowed)}")
        return upper


class AppConfig(BaseModel):
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) formflow_config.json at project root
    4) Defaults
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        if isinstance(cur, list):
            return ",".join(str(item) for item in cur)
        return str(cur) if cur is not None else default

    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn", DEFAULT_DSN)
    )
    separator = (
        _env("FORMFLOW_FLOW_KEY_SEPARATOR")
        or _read_config_file("engine.flow_key_separator")
        or _base("engine.flow_key_separator", "_")
    )
    completion_text = (
        _env("FORMFLOW_COMPLETION_FLOW_STATES")
        or _read_config_file("engine.completion_flow_states")
        or _base("engine.completion_flow_states", "login_complete,verified_user")
    )
    depth_text = (
        _env("FORMFLOW_MAX_REENTRANCY_DEPTH")
        or _read_config_file("engine.max_reentrancy_depth")
        or _base("engine.max_reentrancy_depth", "32")
    )
    level = _env("FORMFLOW_LOG_LEVEL") or _read_config_file("logging.level") or _base("logging.level", "INFO")

    try:
        return AppConfig(
            database=DatabaseConfig(dsn=dsn),
            engine=EngineSettings(
                flow_key_separator=separator,
                completion_flow_states=[s.strip() for s in str(completion_text).split(",") if s.strip()],
                max_reentrancy_depth=int(str(depth_text).strip()),
            ),
            logging=LoggingConfig(level=level),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "EngineSettings",
    "LoggingConfig",
    "load_config",
]
