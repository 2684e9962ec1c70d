# src/navcore/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/navcore/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `NAVCORE_CONFIG_PATH` (replaces the packaged defaults)
- a small whitelist of environment variables (e.g., `NAVCORE_OSRM_BASE_URL`)

Design rule:
- Tuning knobs (speeds, debounce window, result limit) live in YAML, not hard-coded in
  business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from navcore.core.env import load_dotenv_if_present

ModeName = Literal["driving", "bicycling", "walking", "transit"]

CONFIG_DIR = Path(__file__).resolve().parent


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file shipped next to this module."""
    return _read_yaml_file(CONFIG_DIR / filename)


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "navcore"
    http_timeout_seconds: float = Field(15, gt=0)
    log_level: str = "INFO"
    user_agent: str = "navcore/0.1.0 (+https://local)"


class RoutingSettings(BaseModel):
    base_url: str = "https://router.project-osrm.org"
    profiles: dict[ModeName, str] = Field(
        default_factory=lambda: {
            "driving": "driving",
            "bicycling": "cycling",
            "walking": "walking",
            "transit": "driving",
        }
    )
    fallback_speed_kmh: dict[ModeName, float] = Field(
        default_factory=lambda: {"driving": 40, "bicycling": 15, "walking": 5, "transit": 60}
    )


class SearchSettings(BaseModel):
    base_url: str = "https://nominatim.openstreetmap.org"
    limit: int = Field(8, ge=1, le=50)
    min_query_length: int = Field(2, ge=1)
    debounce_seconds: float = Field(0.4, ge=0)
    reverse_zoom: int = Field(18, ge=0, le=18)
    nearby_limit: int = Field(20, ge=1, le=50)
    nearby_delta_degrees: float = Field(0.02, gt=0, le=1)
    max_requests_per_minute: float = Field(60, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: the whitelist is kept small on purpose; everything else belongs in YAML.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("NAVCORE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    user_agent = os.getenv("NAVCORE_USER_AGENT")
    if user_agent:
        data.setdefault("app", {})["user_agent"] = user_agent

    osrm_url = os.getenv("NAVCORE_OSRM_BASE_URL")
    if osrm_url:
        data.setdefault("routing", {})["base_url"] = osrm_url.rstrip("/")

    nominatim_url = os.getenv("NAVCORE_NOMINATIM_BASE_URL")
    if nominatim_url:
        data.setdefault("search", {})["base_url"] = nominatim_url.rstrip("/")

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("NAVCORE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
