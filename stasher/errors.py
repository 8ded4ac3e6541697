"""Exception types raised by the logging pipeline."""


class StasherError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(StasherError):
    """Raised by setup when the pipeline cannot be configured (no sink, no source)."""
