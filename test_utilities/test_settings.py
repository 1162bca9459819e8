"""Test settings loading and data file locations."""
import sys
import io
import json
import os
from pathlib import Path
import tempfile
import shutil

# Fix Windows console encoding (only if not already wrapped)
if sys.platform == 'win32':
    if not isinstance(sys.stdout, io.TextIOWrapper) or (hasattr(sys.stdout, 'encoding') and sys.stdout.encoding != 'utf-8'):
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')

# Add project root and src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))

import settings
from settings import DEFAULT_SETTINGS, get_bosses_path, load_settings, save_settings


def test_settings():
    """Test defaults, merging and validation."""
    print("Testing Settings...")
    print("=" * 60)

    temp_dir = Path(tempfile.mkdtemp())
    path = temp_dir / "settings.json"
    try:
        assert load_settings(path) == DEFAULT_SETTINGS
        print("[OK] Missing file -> defaults")

        path.write_text(json.dumps({"timezone": "US/Pacific", "extra": 1}), encoding='utf-8')
        loaded = load_settings(path)
        assert loaded["timezone"] == "US/Pacific"
        assert loaded["tick_interval_seconds"] == 1.0
        assert loaded["extra"] == 1, "Unknown keys are kept"
        print("[OK] Saved values merged over defaults")

        path.write_text(json.dumps({"tick_interval_seconds": 0, "backup_count": "lots"}), encoding='utf-8')
        loaded = load_settings(path)
        assert loaded["tick_interval_seconds"] == DEFAULT_SETTINGS["tick_interval_seconds"]
        assert loaded["backup_count"] == DEFAULT_SETTINGS["backup_count"]
        print("[OK] Invalid values replaced with defaults")

        for content in ("{broken", "[]"):
            path.write_text(content, encoding='utf-8')
            assert load_settings(path) == DEFAULT_SETTINGS
        print("[OK] Corrupt file -> defaults")

        custom = dict(DEFAULT_SETTINGS, use_military_time=False, backup_count=5)
        nested = temp_dir / "nested" / "settings.json"
        assert save_settings(custom, nested) is True
        assert load_settings(nested) == custom
        print("[OK] Save/load settings")

        print("\n" + "=" * 60)
        print("All tests passed!")
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


def test_data_locations():
    temp_dir = Path(tempfile.mkdtemp())
    previous = os.environ.get(settings.DATA_DIR_ENV)
    try:
        assert get_bosses_path(DEFAULT_SETTINGS, temp_dir) == temp_dir / "bosses.json"
        custom = dict(DEFAULT_SETTINGS, data_file=str(temp_dir / "elsewhere.json"))
        assert get_bosses_path(custom, temp_dir) == temp_dir / "elsewhere.json"
        print("[OK] bosses.json location")

        os.environ[settings.DATA_DIR_ENV] = str(temp_dir)
        assert settings.get_user_data_dir() == temp_dir
        assert settings.get_settings_path() == temp_dir / "settings.json"
        print("[OK] Data dir override from environment")
    finally:
        if previous is None:
            os.environ.pop(settings.DATA_DIR_ENV, None)
        else:
            os.environ[settings.DATA_DIR_ENV] = previous
        shutil.rmtree(temp_dir, ignore_errors=True)


if __name__ == "__main__":
    test_settings()
    test_data_locations()
