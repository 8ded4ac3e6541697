"""Severity levels and their fixed total order."""

from enum import IntEnum


class Severity(IntEnum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4
    UNKNOWN = 5

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value) -> "Severity":
        """Resolve a Severity from an enum member, int, or case-insensitive name.

        Accepts the stdlib spellings ``warning`` and ``critical`` as aliases.
        Raises ValueError for anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        normalized = str(value).strip().upper()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls[normalized]
        except KeyError:
            raise ValueError(f"Unknown severity: {value!r}") from None


_ALIASES = {
    "WARNING": "WARN",
    "CRITICAL": "FATAL",
}


def should_log(severity, minimum) -> bool:
    """Return True if severity >= minimum in the fixed order."""
    return Severity.parse(severity) >= Severity.parse(minimum)
