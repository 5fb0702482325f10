"""Errors raised by the tradesync application layer."""


class TradesyncError(Exception):
    """Base class for application errors."""


class ConfigError(TradesyncError):
    """Configuration file missing, unreadable or invalid."""


class SessionNotFoundError(ConfigError):
    """A session name that is not in the configuration."""

    def __init__(self, name: str, known: list[str]):
        self.name = name
        self.known = known
        super().__init__(f"session {name!r} not found (configured: {', '.join(known) or 'none'})")
