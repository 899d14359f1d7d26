import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from kotla.errors import PersistenceError
from kotla.presenter import Presenter
from kotla.storage import DEFAULT_ALL_TIME_STATS, AllTimeStats, JsonStore

logger = logging.getLogger(__name__)


def record_win(stats: AllTimeStats, guess_count: int) -> AllTimeStats:
    """Stats after a game won on attempt ``guess_count``."""
    is_longest_streak = stats.current_streak == stats.longest_streak
    return replace(
        stats,
        play_count=stats.play_count + 1,
        win_count=stats.win_count + 1,
        current_streak=stats.current_streak + 1,
        longest_streak=stats.longest_streak + 1 if is_longest_streak else stats.longest_streak,
        guess_distribution=tuple(
            (n, wins + 1 if n == guess_count else wins) for n, wins in stats.guess_distribution
        ),
    )


def record_loss(stats: AllTimeStats) -> AllTimeStats:
    return replace(stats, play_count=stats.play_count + 1, current_streak=0)


class StatsStore:
    """All-time statistics, kept in memory and flushed on every update."""

    def __init__(self, store: JsonStore, presenter: Optional[Presenter] = None):
        self.store = store
        self.presenter = presenter or Presenter()
        self._lock = threading.Lock()
        self._stats: AllTimeStats = DEFAULT_ALL_TIME_STATS
        self._loaded = False
        self._unsaved = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> AllTimeStats:
        """Read the stored record once. A player with no plays gets onboarded.

        Raises PersistenceError if the record exists but cannot be read; the
        defaults stay in memory in that case.
        """
        with self._lock:
            if self._loaded:
                return self._stats
            self._loaded = True
            self._stats = self.store.restore_all_time_stats()
            stats = self._stats
        if stats.play_count == 0:
            self.presenter.onboard()
        return stats

    def read(self) -> AllTimeStats:
        return self._stats

    def refresh(self) -> AllTimeStats:
        """Pick up saves made by other sessions since this one last looked."""
        with self.store.lock, self._lock:
            if self._loaded and not self._unsaved:
                try:
                    self._stats = self.store.restore_all_time_stats()
                except PersistenceError as exc:
                    logger.error("Stats not refreshed: %s", exc)
            return self._stats

    def update(self, fn: Callable[[AllTimeStats], AllTimeStats]) -> AllTimeStats:
        """Apply ``fn`` to the stored stats and save the result.

        The stored record is read again under the store lock first, so updates
        from other sessions on the same data directory are kept. If saving
        fails the new value is still kept in memory, later updates build on
        it, and PersistenceError propagates.
        """
        with self.store.lock, self._lock:
            if not self._unsaved:
                try:
                    self._stats = self.store.restore_all_time_stats()
                except PersistenceError as exc:
                    logger.error("Updating stats kept in memory: %s", exc)
            self._stats = fn(self._stats)
            stats = self._stats
            try:
                self.store.store_all_time_stats(stats)
            except PersistenceError:
                self._unsaved = True
                raise
            self._unsaved = False
        logger.info(
            "Stats updated: played=%d won=%d streak=%d/%d",
            stats.play_count,
            stats.win_count,
            stats.current_streak,
            stats.longest_streak,
        )
        return stats
