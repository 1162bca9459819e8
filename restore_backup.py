"""
Script to restore bosses.json from a backup file.
This will help you recover your timers if the data file was damaged.

Usage:
    python restore_backup.py [backup_file_path]

If no backup file is provided, it will list available backups.
"""
import sys
import json
from pathlib import Path
from datetime import datetime

sys.path.insert(0, str(Path(__file__).parent / "src"))

from boss_repository import JsonBossRepository
from settings import get_bosses_path, get_settings_path, load_settings


def get_repository() -> JsonBossRepository:
    """Repository for the bosses.json the application itself uses."""
    settings = load_settings(get_settings_path())
    return JsonBossRepository(get_bosses_path(settings), backup_count=settings["backup_count"])


def list_backups(repository: JsonBossRepository):
    """List all available backups."""
    backups = repository.list_backups()
    print(f"\nFound {len(backups)} backup(s) for: {repository.db_path}\n")
    for i, backup in enumerate(backups, 1):
        mtime = datetime.fromtimestamp(backup.stat().st_mtime)
        size = backup.stat().st_size
        print(f"{i}. {backup.name}")
        print(f"   Modified: {mtime.strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"   Size: {size:,} bytes")

        # Check how many timers were running in this backup
        try:
            with open(backup, 'r', encoding='utf-8') as f:
                bosses = json.load(f).get('bosses', [])
            running = sum(1 for b in bosses if b.get('timer'))
            print(f"   Bosses with timers: {running}/{len(bosses)}")
        except (OSError, ValueError, AttributeError) as e:
            print(f"   Error reading backup: {e}")
        print()

    return backups


def main():
    repository = get_repository()
    if len(sys.argv) > 1:
        backup_path = Path(sys.argv[1])
        if repository.restore_backup(backup_path):
            restored = repository.load()
            print(f"\n✓ Successfully restored from: {backup_path.name}")
            print(f"  Restored to: {repository.db_path}")
            print(f"  Total bosses: {len(restored)}")
            return 0
        print(f"Error: could not restore from {backup_path}")
        return 1

    backups = list_backups(repository)
    if not backups:
        print("No backups found.")
        return 0

    print("To restore a backup, run:")
    print(f"  python restore_backup.py \"{backups[0]}\"")
    return 0


if __name__ == "__main__":
    sys.exit(main())
