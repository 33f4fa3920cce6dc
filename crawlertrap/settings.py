# crawlertrap/settings.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CRAWLERTRAP_"
VISITOR_LOG_FILE = "visitors.json"

_ENV_FIELDS = ("data_dir", "host", "port", "site_title", "log_level")
_LOG_LEVELS = {"critical", "error", "warning", "info", "debug"}


def _default_data_dir() -> Path:
    return (Path.home() / ".crawlertrap").resolve()


class AppSettings(BaseModel):
    """
    Effective server settings.

    Precedence, lowest first: defaults, YAML config file, CRAWLERTRAP_* env vars.
    The visitor log caps are fixed constants and are not configurable here.
    """
    data_dir: Path = Field(default_factory=_default_data_dir)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)
    site_title: str = Field(default="Bot Trap")
    log_level: str = Field(default="info")

    @field_validator("data_dir")
    @classmethod
    def _expand_data_dir(cls, v: Path) -> Path:
        return Path(v).expanduser()

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = (v or "").strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @property
    def visitor_log_path(self) -> Path:
        return self.data_dir / VISITOR_LOG_FILE


def _load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    data = yaml.safe_load(Path(path).read_text("utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return data


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for field in _ENV_FIELDS:
        v = os.getenv(ENV_PREFIX + field.upper(), "").strip()
        if v:
            out[field] = v
    return out


def get_settings(config_path: Optional[Union[str, Path]] = None) -> AppSettings:
    """Build settings from defaults, an optional YAML file and the environment."""
    load_dotenv()

    path = config_path or os.getenv(ENV_PREFIX + "CONFIG", "").strip() or None
    merged: Dict[str, Any] = {}
    if path:
        merged.update(_load_yaml(path))
    merged.update(_env_overrides())
    return AppSettings.model_validate(merged)
