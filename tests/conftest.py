import datetime
import threading

import pytest

from kotla.cities import City, CityIndex
from kotla.errors import TargetResolutionError
from kotla.presenter import Presenter
from kotla.storage import JsonStore

TEST_CITIES = [
    City("Bandung", -6.9175, 107.6191),
    City("Denpasar", -8.6705, 115.2126),
    City("Jakarta", -6.2088, 106.8456),
    City("Makassar", -5.1477, 119.4327),
    City("Medan", 3.5952, 98.6722),
    City("Palembang", -2.9761, 104.7754),
    City("Semarang", -6.9667, 110.4167),
    City("Surabaya", -7.2575, 112.7521),
    City("Yogyakarta", -7.7956, 110.3695),
]
JAKARTA_INDEX = 2


class FakeSeedSource:
    def __init__(self, number=JAKARTA_INDEX, error=None):
        self.number = number
        self.error = error
        self.calls = []

    def fetch(self, date_string):
        self.calls.append(date_string)
        if self.error is not None:
            raise TargetResolutionError(self.error)
        return self.number


class RecordingPresenter(Presenter):
    def __init__(self):
        self.notifications = []
        self.celebrations = 0
        self.stats_shown = 0
        self.onboarded = 0
        self.after_game = threading.Event()

    def notify(self, kind, message):
        self.notifications.append((kind, message))

    def celebrate(self):
        self.celebrations += 1

    def show_stats(self):
        self.stats_shown += 1
        self.after_game.set()

    def onboard(self):
        self.onboarded += 1


class Clock:
    def __init__(self, day=datetime.date(2026, 10, 19)):
        self.day = day

    def __call__(self):
        return self.day

    def advance(self, days=1):
        self.day = self.day + datetime.timedelta(days=days)


@pytest.fixture
def cities():
    return CityIndex(TEST_CITIES)


@pytest.fixture
def store(tmp_path):
    return JsonStore(tmp_path / "data")


@pytest.fixture
def seed_source():
    return FakeSeedSource()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def clock():
    return Clock()
