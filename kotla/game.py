"""The daily game: guesses, win/loss transitions and the stats they feed.

:class:`KotlaGame` is the application state a page holds on to. It owns the
target selector, today's :class:`GameState` and the all-time stats, and is
the only thing that mutates them.
"""

import datetime
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from kotla import config
from kotla.cities import City, CityIndex, get_cities
from kotla.daily_target import DailyTargetSelector
from kotla.errors import DuplicateGuessError, PersistenceError, UnknownCityError
from kotla.presenter import Presenter
from kotla.scoring import GuessRow, score_guesses, share_text
from kotla.seed_source import default_seed_source
from kotla.stats import StatsStore, record_loss, record_win
from kotla.storage import MAX_GUESS_COUNT, AllTimeStats, GameStateRecord, JsonStore

logger = logging.getLogger(__name__)

IN_PROGRESS = "in_progress"
WON = "won"
LOST = "lost"


def win_message(guess_count: int) -> str:
    if guess_count <= 1:
        return "Did you peek?"
    if guess_count == 2:
        return "Brilliant!"
    if guess_count <= 5:
        return "Splendid!"
    return "Phew, just in time"


class GameState:
    """Guesses for one day, in submission order.

    Lowercased names are kept in a set next to the list so repeat guesses
    are found without scanning.
    """

    def __init__(self, date: str, guesses: Optional[List[City]] = None, state: str = IN_PROGRESS):
        self.date = date
        self.state = state
        self.guesses: List[City] = []
        self._keys = set()
        for city in guesses or []:
            if city.key not in self._keys and len(self.guesses) < MAX_GUESS_COUNT:
                self.guesses.append(city)
                self._keys.add(city.key)

    @property
    def is_terminal(self) -> bool:
        return self.state in (WON, LOST)

    def has_guessed(self, city: City) -> bool:
        return city.key in self._keys

    def append(self, city: City, state: str) -> None:
        self.guesses.append(city)
        self._keys.add(city.key)
        self.state = state

    def to_record(self) -> GameStateRecord:
        return GameStateRecord(date=self.date, guesses=tuple(c.name for c in self.guesses), state=self.state)

    @classmethod
    def from_record(cls, record: GameStateRecord, cities: CityIndex) -> "GameState":
        guesses = []
        for name in record.guesses:
            city = cities.find(name)
            if city is None:
                logger.warning("Dropping stored guess %r, not in the city list", name)
                continue
            guesses.append(city)
        game = cls(date=record.date, guesses=guesses, state=record.state)
        if not game.is_terminal and len(game.guesses) >= MAX_GUESS_COUNT:
            logger.warning("Stored game for %s has no attempts left, treating it as lost", record.date)
            game.state = LOST
        return game


@dataclass(frozen=True)
class GuessResult:
    city: City
    state: str
    guess_count: int


class KotlaGame:
    def __init__(
        self,
        cities: Optional[CityIndex] = None,
        store: Optional[JsonStore] = None,
        seed_source=None,
        presenter: Optional[Presenter] = None,
        today: Optional[Callable[[], datetime.date]] = None,
        terminal_delay: Optional[float] = None,
    ):
        self.cities = cities if cities is not None else get_cities()
        self.store = store if store is not None else JsonStore(config.data_dir)
        self.presenter = presenter or Presenter()
        self.terminal_delay = config.terminal_delay if terminal_delay is None else terminal_delay
        self.selector = DailyTargetSelector(
            self.cities,
            self.store,
            seed_source if seed_source is not None else default_seed_source(),
            presenter=self.presenter,
            today=today,
        )
        self.stats = StatsStore(self.store, presenter=self.presenter)
        self._lock = threading.Lock()
        self._game_state: Optional[GameState] = None
        self._unsaved = False
        self._timers: List[threading.Timer] = []

    # ---------- Lifecycle ----------
    def start(self) -> "KotlaGame":
        """Load saved records and begin resolving the city of the day.

        Safe to call on every page run; each step happens once.
        """
        try:
            self.stats.load()
        except PersistenceError as exc:
            logger.error("Stats not loaded: %s", exc)
            self.presenter.notify("error", "Saved statistics could not be read")
        with self._lock:
            self._current_state()
        self.selector.start()
        return self

    def close(self) -> None:
        """Cancel pending post-game tasks."""
        for timer in self._timers:
            timer.cancel()
        self._timers = []

    def __enter__(self) -> "KotlaGame":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _current_state(self) -> GameState:
        # Callers hold self._lock.
        today = self.selector.today_string()
        if self._game_state is None:
            record = None
            try:
                record = self.store.restore_game_state()
            except PersistenceError as exc:
                logger.error("Game state not loaded: %s", exc)
                self.presenter.notify("error", "Saved game could not be read")
            if record is not None:
                self._game_state = GameState.from_record(record, self.cities)
        if self._game_state is None or self._game_state.date != today:
            if self._game_state is not None:
                logger.info("New day %s, starting a fresh game", today)
            self._game_state = GameState(date=today)
            self._unsaved = False
        return self._game_state

    def _reloaded_state(self) -> GameState:
        # Callers hold self.store.lock and self._lock. Another session on the
        # same data directory may have guessed since this one loaded.
        game = self._current_state()
        if self._unsaved:
            return game
        try:
            record = self.store.restore_game_state()
        except PersistenceError as exc:
            logger.error("Game state not reloaded: %s", exc)
            return game
        if record is not None and record.date == game.date:
            self._game_state = GameState.from_record(record, self.cities)
        return self._game_state

    def refresh(self) -> None:
        """Pick up guesses and stats saved by other sessions."""
        with self.store.lock, self._lock:
            self._reloaded_state()
        self.stats.refresh()

    # ---------- Reads ----------
    @property
    def city_of_the_day(self) -> Optional[City]:
        return self.selector.city_of_the_day

    @property
    def is_loading(self) -> bool:
        return self.selector.is_loading or not self.stats.is_loaded or self._game_state is None

    @property
    def has_error(self) -> bool:
        return self.selector.has_error

    @property
    def guesses(self) -> List[City]:
        with self._lock:
            return list(self._current_state().guesses)

    @property
    def game_state(self) -> str:
        with self._lock:
            return self._current_state().state

    @property
    def date(self) -> str:
        with self._lock:
            return self._current_state().date

    @property
    def all_time_stats(self) -> AllTimeStats:
        return self.stats.read()

    def rows(self) -> List[GuessRow]:
        target = self.city_of_the_day
        if target is None:
            return []
        return score_guesses(self.guesses, target)

    def share_text(self) -> str:
        with self._lock:
            state = self._current_state()
            date, state_name = state.date, state.state
        return share_text(date, self.rows(), state_name, MAX_GUESS_COUNT)

    def retry_target(self) -> Optional[City]:
        return self.selector.resolve()

    # ---------- Guessing ----------
    def submit_guess(self, name: str) -> Optional[GuessResult]:
        """Evaluate one guess against the city of the day.

        Returns None without doing anything when the target is unknown, the
        name is blank or the game is already over. Raises UnknownCityError or
        DuplicateGuessError without touching state. If a record cannot be
        saved, the guess still applies in memory and PersistenceError is
        raised once everything else is done.
        """
        target = self.city_of_the_day
        if target is None or not (name or "").strip():
            return None

        failures: List[PersistenceError] = []
        with self.store.lock, self._lock:
            game = self._reloaded_state()
            if game.is_terminal or len(game.guesses) >= MAX_GUESS_COUNT:
                return None

            city = self.cities.find(name)
            if city is None:
                self.presenter.notify("error", "City is not in the Kotla list")
                raise UnknownCityError(name)
            if game.has_guessed(city):
                self.presenter.notify("error", "City was already guessed")
                raise DuplicateGuessError(city.name)

            if city.key == target.key:
                new_state = WON
            elif len(game.guesses) == MAX_GUESS_COUNT - 1:
                new_state = LOST
            else:
                new_state = IN_PROGRESS

            game.append(city, new_state)
            guess_count = len(game.guesses)
            logger.info("Guess %d/%d for %s: %s -> %s", guess_count, MAX_GUESS_COUNT, game.date, city.name, new_state)

            try:
                self.store.store_game_state(game.to_record())
                self._unsaved = False
            except PersistenceError as exc:
                self._unsaved = True
                failures.append(exc)

            if new_state == WON:
                try:
                    self.stats.update(lambda stats: record_win(stats, guess_count))
                except PersistenceError as exc:
                    failures.append(exc)
                self.presenter.notify("success", win_message(guess_count))
            elif new_state == LOST:
                try:
                    self.stats.update(record_loss)
                except PersistenceError as exc:
                    failures.append(exc)
                self.presenter.notify("error", f"Out of attempts. Today's Kotla was: {target.name}")

        if new_state != IN_PROGRESS:
            self._schedule_after_game(new_state == WON)

        if failures:
            for exc in failures:
                logger.error("Progress not saved: %s", exc)
            self.presenter.notify("error", "Progress could not be saved on this device")
            raise failures[0]
        return GuessResult(city=city, state=new_state, guess_count=guess_count)

    @property
    def after_game_pending(self) -> bool:
        """True while the post-game task is scheduled but has not run yet."""
        return any(t.is_alive() for t in self._timers)

    def _schedule_after_game(self, won: bool) -> None:
        self._timers = [t for t in self._timers if t.is_alive()]
        timer = threading.Timer(self.terminal_delay, self._after_game, args=(won,))
        timer.daemon = True
        self._timers.append(timer)
        timer.start()

    def _after_game(self, won: bool) -> None:
        self.presenter.show_stats()
        if won:
            self.presenter.celebrate()
