"""Application settings and per-user data locations."""
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

try:
    from .logger import get_logger
except ImportError:
    from logger import get_logger

logger = get_logger(__name__)

APP_NAME = "boss timer"
DATA_DIR_ENV = "BOSS_TIMER_DATA_DIR"
SETTINGS_FILENAME = "settings.json"
BOSSES_FILENAME = "bosses.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "timezone": "",  # empty = auto-detect system timezone
    "use_military_time": True,  # False = 12-hour format (AM/PM), True = 24-hour format
    "tick_interval_seconds": 1.0,
    "backup_count": 20,
    "data_file": "",  # empty = <user data dir>/bosses.json
}


def get_user_data_dir() -> Path:
    """
    Get the user data directory for storing settings and data files.
    Uses OS-specific application data directories unless BOSS_TIMER_DATA_DIR is set.

    Returns:
        Path to user data directory
    """
    override = os.getenv(DATA_DIR_ENV)
    if override:
        return Path(override)

    if sys.platform == 'win32':
        # Windows: %APPDATA%/boss timer
        appdata = os.getenv('APPDATA')
        if appdata:
            return Path(appdata) / APP_NAME
        return Path.home() / "AppData" / "Roaming" / APP_NAME
    elif sys.platform == 'darwin':
        # macOS: ~/Library/Application Support/boss timer
        return Path.home() / "Library" / "Application Support" / APP_NAME
    else:
        # Linux: ~/.config/boss timer
        xdg_config = os.getenv('XDG_CONFIG_HOME')
        if xdg_config:
            return Path(xdg_config) / APP_NAME
        return Path.home() / ".config" / APP_NAME


def get_settings_path(data_dir: Optional[Path] = None) -> Path:
    return Path(data_dir or get_user_data_dir()) / SETTINGS_FILENAME


def get_bosses_path(settings: Dict[str, Any], data_dir: Optional[Path] = None) -> Path:
    """Resolve the bosses.json location from settings."""
    configured = (settings.get("data_file") or "").strip()
    if configured:
        return Path(configured).expanduser()
    return Path(data_dir or get_user_data_dir()) / BOSSES_FILENAME


def load_settings(settings_path: Path) -> Dict[str, Any]:
    """Load settings from JSON, merged over the defaults. Unreadable files yield defaults."""
    settings = dict(DEFAULT_SETTINGS)
    settings_path = Path(settings_path)
    if not settings_path.exists():
        logger.info(f"[SETTINGS] File not found: {settings_path!s}, using defaults")
        return settings

    try:
        with open(settings_path, 'r', encoding='utf-8') as f:
            loaded = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.error(f"[SETTINGS] Error loading settings from {settings_path!s}: {e}", exc_info=True)
        return settings

    if not isinstance(loaded, dict):
        logger.error(f"[SETTINGS] {settings_path!s} does not contain an object, using defaults")
        return settings

    settings.update(loaded)

    # Reject values that would break the tick engine or backups
    try:
        interval = float(settings.get("tick_interval_seconds"))
        if interval <= 0:
            raise ValueError(interval)
        settings["tick_interval_seconds"] = interval
    except (TypeError, ValueError):
        logger.warning(f"[SETTINGS] Invalid tick_interval_seconds {settings.get('tick_interval_seconds')!r}, using default")
        settings["tick_interval_seconds"] = DEFAULT_SETTINGS["tick_interval_seconds"]
    try:
        settings["backup_count"] = max(0, int(settings.get("backup_count")))
    except (TypeError, ValueError):
        logger.warning(f"[SETTINGS] Invalid backup_count {settings.get('backup_count')!r}, using default")
        settings["backup_count"] = DEFAULT_SETTINGS["backup_count"]

    logger.debug(f"[SETTINGS] Loaded from {settings_path!s}: timezone={settings.get('timezone')!r}")
    return settings


def save_settings(settings: Dict[str, Any], settings_path: Path) -> bool:
    """Save settings to JSON and flush to disk. Returns False on failure."""
    try:
        path = Path(settings_path).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(settings, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        logger.info(f"[SETTINGS] Saved to {path!s}")
        return True
    except (OSError, TypeError) as e:
        logger.error(f"[SETTINGS] Error saving to {settings_path!s}: {e}", exc_info=True)
        return False
