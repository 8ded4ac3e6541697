from datetime import datetime, timezone

import pytest

from stasher.logger import SeverityLogger
from stasher.notifications import Event, Notifier
from stasher.pipeline import Stasher
from stasher.scope import CurrentScope
from stasher.severity import Severity


class MemorySink:
    """Sink that keeps every written line."""

    def __init__(self):
        self.messages = []

    def write(self, line):
        self.messages.append(line)


@pytest.fixture(autouse=True)
def clean_scope():
    CurrentScope.clear()
    yield
    CurrentScope.clear()


@pytest.fixture
def timestamp():
    return datetime(2014, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def pipeline(sink, notifier, timestamp):
    return Stasher(
        logger=SeverityLogger(sink, level=Severity.WARN),
        source="source",
        notifier=notifier,
        clock=lambda: timestamp,
    )


@pytest.fixture
def request_payload():
    return {
        "method": "GET",
        "ip": "127.0.0.1",
        "params": {"foo": "bar"},
        "path": "/home",
        "format": "application/json",
        "controller": "home",
        "action": "index",
        "status": 200,
        "view_runtime": 10,
        "db_runtime": 20,
    }


@pytest.fixture
def sql_payload():
    return {"name": "User Load", "sql": "SELECT * FROM users WHERE id = 1"}


@pytest.fixture
def make_event():
    def _make(name, payload, duration=0.0):
        return Event(name=name, start=100.0, end=100.0 + duration, payload=payload)
    return _make
