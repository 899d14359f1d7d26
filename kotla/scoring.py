"""Per-guess display data: distance, closeness and direction towards the target."""

from dataclasses import dataclass
from typing import Iterable, List

from kotla.cities import City
from kotla.geo_calc import AT_TARGET, Direction, get_bearing, get_bearing_direction, get_distance, get_percentage

# Lower bounds of each closeness tier, in percent.
NEAR_THRESHOLD = 66.66
CLOSE_THRESHOLD = 80.0
EXACT_THRESHOLD = 99.99

TIER_SQUARES = {
    "far": "🟥",
    "near": "🟨",
    "close": "🟩",
    "exact": "🎯",
}


@dataclass(frozen=True)
class GuessRow:
    city: City
    distance_km: float
    percentage: float
    direction: Direction
    tier: str
    is_correct: bool

    @property
    def distance_label(self) -> str:
        return f"{self.distance_km:.2f} km"

    @property
    def aria_label(self) -> str:
        if self.is_correct:
            return self.direction.label
        return f"city of the day is {self.distance_label} to the {self.direction.label}"


def get_tier(percentage: float) -> str:
    if percentage < NEAR_THRESHOLD:
        return "far"
    if percentage < CLOSE_THRESHOLD:
        return "near"
    if percentage < EXACT_THRESHOLD:
        return "close"
    return "exact"


def score_guess(city: City, city_of_the_day: City) -> GuessRow:
    distance = get_distance(city, city_of_the_day)
    percentage = get_percentage(distance)
    is_correct = city.key == city_of_the_day.key
    direction = AT_TARGET if is_correct else get_bearing_direction(get_bearing(city, city_of_the_day))
    return GuessRow(
        city=city,
        distance_km=distance,
        percentage=percentage,
        direction=direction,
        tier=get_tier(percentage),
        is_correct=is_correct,
    )


def score_guesses(guesses: Iterable[City], city_of_the_day: City) -> List[GuessRow]:
    return [score_guess(city, city_of_the_day) for city in guesses]


def share_text(date_string: str, rows: List[GuessRow], state: str, max_guess_count: int = 6) -> str:
    """Spoiler-free summary of a finished (or ongoing) game, one line per guess."""
    if state == "won":
        result = str(len(rows))
    elif state == "lost":
        result = "X"
    else:
        result = "-"
    lines = [f"Kotla {date_string} {result}/{max_guess_count}"]
    for row in rows:
        lines.append(f"{TIER_SQUARES[row.tier]}{row.direction.emoji}")
    return "\n".join(lines)
