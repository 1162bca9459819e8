"""Load and save the boss record set as a JSON file, with rolling backups."""
import json
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

try:
    from .boss_record import BossRecord
    from .errors import InvalidRecordError
    from .logger import get_logger
except ImportError:
    from boss_record import BossRecord
    from errors import InvalidRecordError
    from logger import get_logger

logger = get_logger(__name__)

DEFAULT_BACKUP_COUNT = 20
BACKUP_GLOB = "bosses_backup_*.json"


class PersistenceAdapter:
    """
    Storage contract consumed by the timer store.

    ``load`` never raises for a missing or corrupt store; it returns an empty
    list so the application can start fresh. ``save`` reports failure through
    its return value.
    """

    def load(self) -> List[BossRecord]:
        raise NotImplementedError

    def save(self, records: Sequence[BossRecord]) -> bool:
        raise NotImplementedError


class JsonBossRepository(PersistenceAdapter):
    """Persists bosses to ``bosses.json`` shaped as ``{"bosses": [...]}``."""

    def __init__(self, db_path, backup_count: int = DEFAULT_BACKUP_COUNT):
        """
        Args:
            db_path: Path to the bosses.json file
            backup_count: How many rolling backups to keep next to it
        """
        self.db_path = Path(db_path)
        self.backup_count = max(0, int(backup_count))

    def load(self) -> List[BossRecord]:
        """Load bosses from the JSON file. Returns [] when missing or unreadable."""
        logger.info(f"[LOAD] Starting load operation from: {self.db_path}")

        if not self.db_path.exists():
            logger.warning(f"[LOAD] Boss database file not found at {self.db_path}")
            logger.info("[LOAD] Will create new database on first save")
            return []

        try:
            with open(self.db_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"[LOAD] ERROR: Invalid JSON in {self.db_path}: {e}", exc_info=True)
            logger.error("[LOAD] File may be corrupted. Check backups folder for previous version.")
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"[LOAD] ERROR: Could not read {self.db_path}: {e}", exc_info=True)
            return []

        entries = data.get('bosses') if isinstance(data, dict) else None
        if not isinstance(entries, list):
            logger.error(f"[LOAD] ERROR: {self.db_path} has no 'bosses' list - starting with an empty set")
            return []

        records: List[BossRecord] = []
        for index, entry in enumerate(entries):
            try:
                records.append(BossRecord.from_dict(entry))
            except InvalidRecordError as e:
                logger.warning(f"[LOAD] Skipping malformed boss entry #{index}: {e}")

        running = sum(1 for r in records if r.timer.is_started)
        with_notes = sum(1 for r in records if r.notes.strip())
        logger.info(f"[LOAD] Loaded {len(records)} boss(es) from file "
                    f"(with_timers={running}, with_notes={with_notes})")
        return records

    def _get_backup_dir(self) -> Path:
        return self.db_path.parent / "backups"

    def list_backups(self) -> List[Path]:
        """Backup files, newest first."""
        backup_dir = self._get_backup_dir()
        if not backup_dir.exists():
            return []
        return sorted(backup_dir.glob(BACKUP_GLOB), key=lambda p: (p.stat().st_mtime, p.name), reverse=True)

    def _create_backup(self) -> Optional[Path]:
        """Copy the current bosses.json into the backups folder before it is overwritten."""
        if self.backup_count == 0 or not self.db_path.exists():
            return None

        try:
            backup_dir = self._get_backup_dir()
            backup_dir.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            backup_path = backup_dir / f"bosses_backup_{timestamp}.json"
            shutil.copy2(self.db_path, backup_path)

            removed_count = 0
            for old_backup in self.list_backups()[self.backup_count:]:
                try:
                    old_backup.unlink()
                    removed_count += 1
                except OSError as e:
                    logger.warning(f"[BACKUP] Could not remove old backup {old_backup.name}: {e}")

            logger.debug(f"[BACKUP] Backup created: {backup_path.name}, removed {removed_count} old backup(s)")
            return backup_path
        except OSError as e:
            logger.error(f"[BACKUP] ERROR creating backup: {e}", exc_info=True)
            return None

    def create_manual_backup(self) -> Optional[Path]:
        """
        Create a backup of the current bosses.json on demand.

        Returns:
            Path to the created backup file, or None if there was nothing to back up
        """
        return self._create_backup()

    def save(self, records: Sequence[BossRecord]) -> bool:
        """Write the full record set, replacing the previous file atomically."""
        logger.debug(f"[SAVE] Saving {len(records)} boss(es) to {self.db_path}")
        tmp_path = None
        try:
            self._create_backup()
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            payload = {'bosses': [record.to_dict() for record in records]}
            fd, tmp_path = tempfile.mkstemp(prefix=".bosses_", suffix=".tmp", dir=str(self.db_path.parent))
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.db_path)
            tmp_path = None

            logger.debug(f"[SAVE] File written successfully: {self.db_path}")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"[SAVE] ERROR saving boss database to {self.db_path}: {e}", exc_info=True)
            return False
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning(f"[SAVE] Could not remove temp file {tmp_path}")

    def restore_backup(self, backup_path) -> bool:
        """
        Replace bosses.json with a backup file.

        The current file is backed up first so a restore can itself be undone.
        The backup must load as a valid record set.
        """
        backup_path = Path(backup_path)
        if not backup_path.exists():
            logger.error(f"[BACKUP] Backup file not found: {backup_path}")
            return False

        try:
            with open(backup_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict) or not isinstance(data.get('bosses'), list):
                logger.error(f"[BACKUP] {backup_path.name} is not a boss database file")
                return False
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"[BACKUP] Could not read backup {backup_path.name}: {e}")
            return False

        try:
            if self.db_path.exists():
                stamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
                before = self._get_backup_dir() / f"bosses_backup_BEFORE_RESTORE_{stamp}.json"
                before.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(self.db_path, before)
                logger.info(f"[BACKUP] Saved current file as {before.name}")
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(backup_path, self.db_path)
        except OSError as e:
            logger.error(f"[BACKUP] Error restoring backup {backup_path.name}: {e}", exc_info=True)
            return False

        logger.info(f"[BACKUP] Restored {len(data['bosses'])} boss(es) from {backup_path.name}")
        return True
