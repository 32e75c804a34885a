"""
Configuration management for FlowCanvas.

Settings are resolved in this order:
1. Environment variable FLOWCANVAS_<KEY> (a .env file next to the app is loaded first)
2. config.json next to the executable/project root
3. Built-in defaults
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from flowcanvas.edit.constants import ZOOM_MAX, ZOOM_MIN, ZOOM_SENSITIVITY
from flowcanvas.paths import get_config_path, get_env_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "FLOWCANVAS_"

DEFAULTS = {
    "log_level": "INFO",
    "export_filename": "app-flow-history.json",
    "port": 8081,
    "seed_demo": True,
    "zoom_min": ZOOM_MIN,
    "zoom_max": ZOOM_MAX,
    "zoom_sensitivity": ZOOM_SENSITIVITY,
}


@dataclass
class CanvasSettings:
    log_level: str = DEFAULTS["log_level"]
    export_filename: str = DEFAULTS["export_filename"]
    port: int = DEFAULTS["port"]
    seed_demo: bool = DEFAULTS["seed_demo"]
    zoom_min: float = DEFAULTS["zoom_min"]
    zoom_max: float = DEFAULTS["zoom_max"]
    zoom_sensitivity: float = DEFAULTS["zoom_sensitivity"]


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from config.json."""
    config_path = config_path or get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config file {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, config_path: Optional[Path] = None) -> None:
    """Save configuration to config.json."""
    config_path = config_path or get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _coerce(value: Any, default: Any) -> Any:
    """Convert a raw env/config value to the type of its default."""
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return str(value)


def get_setting(key: str, config: Optional[dict] = None) -> Any:
    """
    Get a single setting.

    Priority:
    1. Environment variable FLOWCANVAS_<KEY>
    2. Stored in config.json
    3. DEFAULTS
    """
    if key not in DEFAULTS:
        raise KeyError(f"Unknown setting: {key}")
    default = DEFAULTS[key]

    env_value = os.environ.get(ENV_PREFIX + key.upper())
    if env_value is not None:
        raw = env_value
    else:
        if config is None:
            config = load_config()
        if key not in config:
            return default
        raw = config[key]

    try:
        return _coerce(raw, default)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value {raw!r} for setting '{key}', using default {default!r}")
        return default


def set_setting(key: str, value: Any, config_path: Optional[Path] = None) -> None:
    """Persist a setting override to config.json."""
    if key not in DEFAULTS:
        raise KeyError(f"Unknown setting: {key}")
    config = load_config(config_path)
    config[key] = value
    save_config(config, config_path)


def load_settings(config_path: Optional[Path] = None, env_path: Optional[Path] = None) -> CanvasSettings:
    """Load .env, then resolve every setting into a CanvasSettings."""
    load_dotenv(env_path or get_env_path())
    config = load_config(config_path)
    settings = CanvasSettings(**{key: get_setting(key, config) for key in DEFAULTS})
    if settings.zoom_min > settings.zoom_max:
        logger.warning("zoom_min is larger than zoom_max; swapping")
        settings.zoom_min, settings.zoom_max = settings.zoom_max, settings.zoom_min
    return settings
