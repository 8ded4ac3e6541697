"""Field extractors: pure functions turning a notification payload into log fields.

Payloads are plain mappings supplied by the host. Missing keys never raise;
the request extractor keeps its key set stable by filling gaps with None.
"""

import traceback
from collections.abc import Mapping, Sequence
from typing import Any

from stasher.scope import CurrentScope

DEFAULT_FILTER_PARAMETERS = ("password", "password_confirmation")

SUPPRESSED_SQL_NAMES = frozenset({"", "SCHEMA", "ActiveRecord::SessionStore"})

DURATION_PRECISION = 6


def _seconds(value) -> float:
    return round(float(value), DURATION_PRECISION)


def _header(headers: Mapping | None, name: str):
    if not headers:
        return None
    wanted = {name.lower(), "http_" + name.lower().replace("-", "_")}
    for key, value in headers.items():
        if str(key).lower() in wanted:
            return value
    return None


def client_ip(payload: Mapping) -> str | None:
    """First X-Forwarded-For hop if present, else the remote address."""
    forwarded = _header(payload.get("headers"), "X-Forwarded-For")
    if forwarded:
        first = str(forwarded).split(",")[0].strip()
        if first:
            return first
    return payload.get("ip") or payload.get("remote_addr")


def filter_params(params, denylist) -> Any:
    """Drop denylisted keys at every nesting level. Keys are removed, not masked."""
    if isinstance(params, Mapping):
        return {
            k: filter_params(v, denylist)
            for k, v in params.items()
            if str(k) not in denylist
        }
    if isinstance(params, list):
        return [filter_params(v, denylist) for v in params]
    return params


def extract_request(payload: Mapping, filter_parameters=DEFAULT_FILTER_PARAMETERS) -> dict:
    denylist = set(filter_parameters)
    params = payload.get("params") or {}
    return {
        "method": payload.get("method"),
        "ip": client_ip(payload),
        "params": filter_params(params, denylist),
        "path": payload.get("path"),
        "format": payload.get("format"),
        "controller": payload.get("controller"),
        "action": payload.get("action"),
    }


def extract_status(payload: Mapping) -> dict:
    status = payload.get("status")
    if status is None:
        if payload.get("exception") or payload.get("exception_object"):
            return {"status": 500}
        return {}
    return {"status": int(status)}


def runtimes(event) -> dict:
    """Request timings in seconds. view/db payload values are milliseconds."""
    payload = event.payload
    return {
        "duration": _seconds(event.duration),
        "view": _seconds((payload.get("view_runtime") or 0) / 1000.0),
        "db": _seconds((payload.get("db_runtime") or 0) / 1000.0),
    }


def format_backtrace(tb) -> str:
    if tb is None:
        return ""
    return "\n".join(line.rstrip() for line in traceback.format_tb(tb))


def format_exception(name, message, backtrace) -> dict:
    return {
        "exception": {
            "name": name,
            "message": message,
            "backtrace": backtrace,
        }
    }


def exception_fields(exc: BaseException) -> dict:
    return format_exception(type(exc).__name__, str(exc), format_backtrace(exc.__traceback__))


def extract_exception(payload: Mapping) -> dict:
    exc = payload.get("exception")
    if isinstance(exc, BaseException):
        return exception_fields(exc)
    if not exc or isinstance(exc, str) or not isinstance(exc, Sequence):
        return {}

    name = exc[0]
    message = exc[1] if len(exc) > 1 else ""
    if len(exc) > 2:
        backtrace = exc[2]
    else:
        obj = payload.get("exception_object")
        backtrace = format_backtrace(obj.__traceback__) if isinstance(obj, BaseException) else ""
    if isinstance(backtrace, (list, tuple)):
        backtrace = "\n".join(str(line) for line in backtrace)
    return format_exception(name, message, backtrace)


def is_suppressed_sql(payload: Mapping) -> bool:
    """Schema introspection, unnamed and session-store queries are never logged."""
    name = payload.get("name")
    return name is None or name in SUPPRESSED_SQL_NAMES


def extract_sql(payload: Mapping, duration: float = 0.0) -> dict:
    return {
        "name": payload.get("name"),
        "sql": payload.get("sql"),
        "duration": _seconds(duration),
    }


def extract_current_scope() -> dict:
    return CurrentScope.fields()
