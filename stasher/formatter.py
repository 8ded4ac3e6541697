"""Renders log events as single-line logstash (v1) JSON."""

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable

SCHEMA_VERSION = "1"


def format_timestamp(ts: datetime) -> str:
    """ISO 8601 with milliseconds; UTC is written with a Z suffix. Naive values are UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    rendered = ts.isoformat(timespec="milliseconds")
    if rendered.endswith("+00:00"):
        rendered = rendered[:-6] + "Z"
    return rendered


def _json_default(value):
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@dataclass
class LogEvent:
    source: str
    tags: list[str] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = SCHEMA_VERSION
    message: str | None = None

    def to_dict(self) -> dict:
        data = {
            "@source": self.source,
            "tags": list(self.tags),
            "@fields": self.fields,
        }
        if self.message is not None:
            data["@message"] = self.message
        data["@timestamp"] = format_timestamp(self.timestamp)
        data["@version"] = self.version
        return data

    def to_json(self) -> str:
        return json.dumps(
            self.to_dict(),
            separators=(",", ":"),
            ensure_ascii=False,
            default=_json_default,
        )


def format_event(source: str, tags, fields: dict, timestamp: datetime | None = None,
                 hook: Callable[[LogEvent], Any] | None = None,
                 message: str | None = None) -> str:
    """Build a LogEvent, let hook adjust it, and return the JSON line (no newline)."""
    event = LogEvent(source=source, tags=list(tags), fields=dict(fields), message=message)
    if timestamp is not None:
        event.timestamp = timestamp
    if hook is not None:
        hook(event)
    return event.to_json()
