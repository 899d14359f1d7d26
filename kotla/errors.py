"""Errors raised by the game core.

User-input errors (unknown or repeated city) are recoverable and never
mutate state. Target resolution and persistence failures degrade the
session without crashing it.
"""


class KotlaError(Exception):
    pass


class UnknownCityError(KotlaError):
    def __init__(self, name: str):
        super().__init__(f"City is not in the Kotla list: {name!r}")
        self.name = name


class DuplicateGuessError(KotlaError):
    def __init__(self, name: str):
        super().__init__(f"City was already guessed: {name!r}")
        self.name = name


class TargetResolutionError(KotlaError):
    """The number of the day could not be obtained."""


class PersistenceError(KotlaError):
    """A durable record could not be read or written."""
