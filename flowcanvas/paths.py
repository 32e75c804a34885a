"""
Path utilities for FlowCanvas.

Handles path resolution for both development mode and frozen (PyInstaller) executables.
- In development: paths are relative to the project root
- When frozen: paths are relative to the executable location

External data (exports/, config.json, .env) lives NEXT TO the executable, not bundled inside.
"""

import sys
from pathlib import Path


def get_app_dir() -> Path:
    """
    Get the application directory.

    - In development: the project root (parent of flowcanvas/)
    - When frozen: the directory containing the executable
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent.parent


def get_exports_dir() -> Path:
    """Get the directory exported bundles are written to."""
    return get_app_dir() / "exports"


def get_config_path() -> Path:
    """Get the path to the config file (stores user overrides)."""
    return get_app_dir() / "config.json"


def get_env_path() -> Path:
    return get_app_dir() / ".env"


def ensure_exports_dir() -> Path:
    """
    Ensure the exports directory exists, creating it if necessary.
    Returns the path to the exports directory.
    """
    exports_dir = get_exports_dir()
    exports_dir.mkdir(parents=True, exist_ok=True)
    return exports_dir
