"""Resolves the city of the day.

The number of the day is cached with its date key, so a reload on the same
day never asks the seed source again. A new day invalidates the cache.
"""

import datetime
import logging
import threading
from typing import Callable, Optional

from kotla.cities import City, CityIndex
from kotla.errors import PersistenceError, TargetResolutionError
from kotla.presenter import Presenter
from kotla.storage import JsonStore, NumberOfTheDay, get_today_date_string

logger = logging.getLogger(__name__)


class DailyTargetSelector:
    def __init__(
        self,
        cities: CityIndex,
        store: JsonStore,
        seed_source,
        presenter: Optional[Presenter] = None,
        today: Optional[Callable[[], datetime.date]] = None,
    ):
        self.cities = cities
        self.store = store
        self.seed_source = seed_source
        self.presenter = presenter or Presenter()
        self._today = today or datetime.date.today
        self._lock = threading.Lock()
        self._start_lock = threading.Lock()
        self._city: Optional[City] = None
        self._resolved_for: Optional[str] = None
        self._failed_for: Optional[str] = None
        self._thread: Optional[threading.Thread] = None
        self._started_for: Optional[str] = None

    def today_string(self) -> str:
        return get_today_date_string(self._today())

    @property
    def city_of_the_day(self) -> Optional[City]:
        if self._resolved_for != self.today_string():
            return None
        return self._city

    @property
    def is_loading(self) -> bool:
        ds = self.today_string()
        return self._resolved_for != ds and self._failed_for != ds

    @property
    def has_error(self) -> bool:
        return self._failed_for == self.today_string()

    def resolve(self) -> Optional[City]:
        """Set the city of the day, asking the seed source at most once per day.

        Returns None when the seed could not be obtained; ``has_error`` is set then.
        """
        with self._lock:
            ds = self.today_string()
            if self._city is not None and self._resolved_for == ds:
                return self._city

            try:
                cached = self.store.restore_number_of_the_day()
            except PersistenceError as exc:
                logger.error("Ignoring unreadable number of the day cache: %s", exc)
                self.presenter.notify("error", "Saved data could not be read")
                cached = NumberOfTheDay()

            if cached.number == -1 or cached.date_string != ds:
                try:
                    number = self.seed_source.fetch(ds)
                except TargetResolutionError as exc:
                    logger.error("Could not resolve the city of the day: %s", exc)
                    self._failed_for = ds
                    return None
                self._set_city(number, ds)
                try:
                    self.store.store_number_of_the_day(NumberOfTheDay(number=number, date_string=ds))
                except PersistenceError as exc:
                    logger.error("Number of the day not saved: %s", exc)
                    self.presenter.notify("error", "Progress could not be saved")
            else:
                logger.debug("Using cached number of the day for %s", ds)
                self._set_city(cached.number, ds)
            return self._city

    def _set_city(self, number: int, ds: str) -> None:
        self._city = self.cities[number % len(self.cities)]
        self._resolved_for = ds
        self._failed_for = None

    def start(self) -> threading.Thread:
        """Run :meth:`resolve` in the background, once per day.

        Calling it again while resolution is running, or after it finished
        today, returns the existing thread.
        """
        with self._start_lock:
            ds = self.today_string()
            if self._thread is not None and (self._thread.is_alive() or self._started_for == ds):
                return self._thread
            self._started_for = ds
            self._thread = threading.Thread(target=self.resolve, name=f"kotla-target-{ds}", daemon=True)
            self._thread.start()
            return self._thread

    def wait(self, timeout: Optional[float] = None) -> Optional[City]:
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self.city_of_the_day
