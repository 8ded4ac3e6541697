"""Per-request field overlay merged into every log line of that request.

Each execution context (thread or asyncio task) sees its own overlay, so two
requests served concurrently never share fields. The overlay is cleared at the
end of every request by the subscriber that logs the response.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_fields: ContextVar[dict | None] = ContextVar("stasher_current_scope", default=None)


class _CurrentScope:
    def fields(self) -> dict[str, Any]:
        current = _fields.get()
        if current is None:
            current = {}
            _fields.set(current)
        return current

    def set_fields(self, fields: dict[str, Any]) -> None:
        """Replace the whole overlay. The mapping is stored as given, not copied."""
        _fields.set(fields)

    def clear(self) -> None:
        _fields.set({})

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.fields()[key] = value

    def __getitem__(self, key: str) -> Any:
        return self.fields()[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.fields()[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self.fields()

    @contextmanager
    def unit(self):
        """Run a block as one logical unit; the overlay is cleared on exit, even on error."""
        try:
            yield self
        finally:
            self.clear()


CurrentScope = _CurrentScope()
