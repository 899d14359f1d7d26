"""Durable records kept between visits.

Three independent JSON files live under the data directory:

- ``number_of_the_day.json``: ``{"number": int, "dateString": "YYYY-MM-DD"}``
- ``game_state.json``: ``{"date": str, "guesses": [city name, ...], "state": str}``
- ``all_time_stats.json``: counters plus ``guessDistribution`` as ``[[n, wins], ...]``

A missing file reads as the default record. A file that cannot be read or
parsed raises :class:`PersistenceError` rather than being silently replaced.
"""

import datetime
import json
import logging
import pathlib
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from kotla.errors import PersistenceError

logger = logging.getLogger(__name__)

NUMBER_OF_THE_DAY_FILE = "number_of_the_day.json"
GAME_STATE_FILE = "game_state.json"
ALL_TIME_STATS_FILE = "all_time_stats.json"

MAX_GUESS_COUNT = 6
GAME_STATES = ("in_progress", "won", "lost")


def get_today_date_string(today: Optional[datetime.date] = None) -> str:
    """Date key for the local calendar day."""
    return (today or datetime.date.today()).isoformat()


@dataclass(frozen=True)
class NumberOfTheDay:
    number: int = -1
    date_string: str = ""


@dataclass(frozen=True)
class GameStateRecord:
    date: str
    guesses: Tuple[str, ...] = ()
    state: str = "in_progress"


@dataclass(frozen=True)
class AllTimeStats:
    play_count: int = 0
    win_count: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    guess_distribution: Tuple[Tuple[int, int], ...] = field(
        default_factory=lambda: tuple((n, 0) for n in range(1, MAX_GUESS_COUNT + 1))
    )

    @property
    def win_percentage(self) -> int:
        if not self.play_count:
            return 0
        return int(round(self.win_count * 100 / self.play_count))


DEFAULT_ALL_TIME_STATS = AllTimeStats()


def _as_count(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _normalize_distribution(raw: Any) -> Tuple[Tuple[int, int], ...]:
    """Ensure buckets 1..6 are all present, in order.

    Accepts ``[[n, wins], ...]`` or ``{"n": wins}``; unknown buckets are dropped.
    """
    counts: Dict[int, int] = {}
    if isinstance(raw, dict):
        items = list(raw.items())
    elif isinstance(raw, list):
        items = [tuple(pair) for pair in raw if isinstance(pair, (list, tuple)) and len(pair) == 2]
    else:
        items = []
    for guess_number, wins in items:
        n = _as_count(guess_number)
        if 1 <= n <= MAX_GUESS_COUNT:
            counts[n] = _as_count(wins)
    return tuple((n, counts.get(n, 0)) for n in range(1, MAX_GUESS_COUNT + 1))


def stats_from_dict(raw: Dict[str, Any]) -> AllTimeStats:
    play_count = _as_count(raw.get("playCount", 0))
    current_streak = _as_count(raw.get("currentStreak", 0))
    distribution = _normalize_distribution(raw.get("guessDistribution"))
    return AllTimeStats(
        play_count=play_count,
        win_count=min(_as_count(raw.get("winCount", 0)), play_count),
        current_streak=current_streak,
        longest_streak=max(_as_count(raw.get("longestStreak", 0)), current_streak),
        guess_distribution=distribution,
    )


def stats_to_dict(stats: AllTimeStats) -> Dict[str, Any]:
    return {
        "playCount": stats.play_count,
        "winCount": stats.win_count,
        "currentStreak": stats.current_streak,
        "longestStreak": stats.longest_streak,
        "guessDistribution": [[n, wins] for n, wins in stats.guess_distribution],
    }


_DIR_LOCKS = {}
_DIR_LOCKS_GUARD = threading.Lock()


def _lock_for(data_dir: pathlib.Path):
    key = data_dir.resolve()
    with _DIR_LOCKS_GUARD:
        if key not in _DIR_LOCKS:
            _DIR_LOCKS[key] = threading.RLock()
        return _DIR_LOCKS[key]


class JsonStore:
    """Reads and writes the three records under ``data_dir``.

    Every store opened on the same directory shares one re-entrant ``lock``.
    Sessions that read a record, change it and write it back hold that lock
    for the whole cycle so they never overwrite each other.
    """

    def __init__(self, data_dir: pathlib.Path):
        self.data_dir = pathlib.Path(data_dir)
        self.lock = _lock_for(self.data_dir)

    def _path(self, name: str) -> pathlib.Path:
        return self.data_dir / name

    def _read(self, name: str) -> Optional[Dict[str, Any]]:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Could not read {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise PersistenceError(f"Unexpected content in {path}")
        return raw

    def _write(self, name: str, payload: Dict[str, Any]) -> None:
        path = self._path(name)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Could not write {path}: {exc}") from exc
        logger.debug("Saved %s", path)

    # ---------- Number of the day ----------
    def restore_number_of_the_day(self) -> NumberOfTheDay:
        raw = self._read(NUMBER_OF_THE_DAY_FILE)
        if raw is None:
            return NumberOfTheDay()
        try:
            number = int(raw.get("number", -1))
        except (TypeError, ValueError):
            number = -1
        return NumberOfTheDay(number=number, date_string=str(raw.get("dateString") or ""))

    def store_number_of_the_day(self, value: NumberOfTheDay) -> None:
        self._write(NUMBER_OF_THE_DAY_FILE, {"number": value.number, "dateString": value.date_string})

    # ---------- Game state ----------
    def restore_game_state(self) -> Optional[GameStateRecord]:
        raw = self._read(GAME_STATE_FILE)
        if raw is None:
            return None
        state = raw.get("state")
        if state not in GAME_STATES:
            state = "in_progress"
        guesses = [str(g) for g in (raw.get("guesses") or []) if g]
        return GameStateRecord(
            date=str(raw.get("date") or ""),
            guesses=tuple(guesses[:MAX_GUESS_COUNT]),
            state=state,
        )

    def store_game_state(self, record: GameStateRecord) -> None:
        self._write(
            GAME_STATE_FILE,
            {"date": record.date, "guesses": list(record.guesses), "state": record.state},
        )

    # ---------- All-time stats ----------
    def restore_all_time_stats(self) -> AllTimeStats:
        raw = self._read(ALL_TIME_STATS_FILE)
        if raw is None:
            return DEFAULT_ALL_TIME_STATS
        return stats_from_dict(raw)

    def store_all_time_stats(self, stats: AllTimeStats) -> None:
        self._write(ALL_TIME_STATS_FILE, stats_to_dict(stats))


def guess_distribution_as_list(stats: AllTimeStats) -> List[int]:
    """Win counts ordered by guess number, handy for charts."""
    return [wins for _, wins in stats.guess_distribution]
