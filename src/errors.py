"""Error kinds raised and reported by the timer core."""


class BossTimerError(Exception):
    """Base class for all boss timer errors."""


class InvalidRecordError(BossTimerError, ValueError):
    """A boss record failed validation (empty name, non-positive interval, ...)."""


class NotFoundError(BossTimerError, KeyError):
    """An operation referenced a boss id that is not in the record set."""

    def __init__(self, boss_id: str):
        super().__init__(boss_id)
        self.boss_id = boss_id

    def __str__(self) -> str:
        return f"Boss with id '{self.boss_id}' does not exist"


class PersistenceError(BossTimerError):
    """Loading or saving the record set failed. Always recoverable."""
