"""In-memory persistence adapter for tests."""
import sys
from pathlib import Path
from typing import List, Sequence

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from boss_repository import PersistenceAdapter
from boss_record import BossRecord


class MockRepository(PersistenceAdapter):
    """Keeps saved record sets in memory and can be told to fail."""

    def __init__(self, initial: Sequence[BossRecord] = ()):
        self.stored: List[BossRecord] = list(initial)
        self.save_calls = 0
        self.fail_saves = False
        self.raise_on_save = False

    def load(self) -> List[BossRecord]:
        return list(self.stored)

    def save(self, records: Sequence[BossRecord]) -> bool:
        self.save_calls += 1
        if self.raise_on_save:
            raise OSError("disk unplugged")
        if self.fail_saves:
            return False
        self.stored = list(records)
        return True
