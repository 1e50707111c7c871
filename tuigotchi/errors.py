class TuigotchiError(Exception):
    """Base class for everything the engine raises."""


class ConfigError(TuigotchiError, ValueError):
    pass


class InvalidZoneRule(ConfigError):
    pass


class InvalidWindow(ConfigError):
    pass


class UnknownNeed(TuigotchiError, KeyError):
    def __init__(self, name):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"unknown need: {self.name!r}"


class ClockSkewWarning(TuigotchiError, UserWarning):
    """The wall clock moved backwards between two ticks. Never raised, only reported."""

    def __init__(self, last_update: float, now: float):
        super().__init__(f"clock moved backwards by {last_update - now:.3f}s")
        self.last_update = last_update
        self.now = now

    @property
    def skew_seconds(self):
        return self.last_update - self.now
