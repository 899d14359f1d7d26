import csv
import pathlib
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from kotla import config


@dataclass(frozen=True)
class City:
    name: str
    latitude: float
    longitude: float

    @property
    def key(self) -> str:
        return normalize_name(self.name)


def normalize_name(name: str) -> str:
    """Return the lookup key for a city name (trimmed, lowercased)."""
    return (name or "").strip().lower()


def load_cities(path: pathlib.Path) -> List[City]:
    """Read the reference city set from a CSV with name/latitude/longitude columns.

    Row order is preserved; it defines the index used to pick the city of the day.
    """
    cities: List[City] = []
    seen = set()
    with open(path, encoding="utf-8", newline="") as f:
        for row in csv.DictReader(f):
            name = (row.get("name") or "").strip()
            if not name:
                continue
            key = normalize_name(name)
            if key in seen:
                raise ValueError(f"Duplicate city in {path}: {name}")
            seen.add(key)
            cities.append(City(name=name, latitude=float(row["latitude"]), longitude=float(row["longitude"])))
    if not cities:
        raise ValueError(f"No cities found in {path}")
    return cities


class CityIndex:
    """Ordered, case-insensitive view over the reference set."""

    def __init__(self, cities: Iterable[City]):
        self._cities: List[City] = list(cities)
        self._by_key: Dict[str, City] = {c.key: c for c in self._cities}

    def __len__(self) -> int:
        return len(self._cities)

    def __iter__(self):
        return iter(self._cities)

    def __getitem__(self, index: int) -> City:
        return self._cities[index]

    def find(self, name: str) -> Optional[City]:
        return self._by_key.get(normalize_name(name))

    def names(self) -> List[str]:
        return [c.name for c in self._cities]


_default_index: Optional[CityIndex] = None


def get_cities() -> CityIndex:
    """Reference set loaded once from ``config.cities_file``."""
    global _default_index
    if _default_index is None:
        _default_index = CityIndex(load_cities(config.cities_file))
    return _default_index
