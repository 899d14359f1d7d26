"""Kotla: guess the Indonesian city of the day."""

from kotla.errors import (
    DuplicateGuessError,
    KotlaError,
    PersistenceError,
    TargetResolutionError,
    UnknownCityError,
)
from kotla.game import MAX_GUESS_COUNT, GuessResult, KotlaGame

__all__ = [
    "DuplicateGuessError",
    "GuessResult",
    "KotlaError",
    "KotlaGame",
    "MAX_GUESS_COUNT",
    "PersistenceError",
    "TargetResolutionError",
    "UnknownCityError",
]
