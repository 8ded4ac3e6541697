"""In-process notification bus built on blinker signals.

Channels are named ``<event>.<namespace>`` (``process_action.controller``,
``sql.database``). Subscribers receive a single :class:`Event` argument.
"""

import time
import weakref
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable

from blinker import Signal


@dataclass
class Event:
    name: str
    start: float = 0.0
    end: float = 0.0
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Elapsed seconds between start and end."""
        return max(self.end - self.start, 0.0)


class Notifier:
    def __init__(self):
        self._signals: dict[str, Signal] = {}

    def _signal(self, channel: str) -> Signal:
        sig = self._signals.get(channel)
        if sig is None:
            sig = self._signals[channel] = Signal(channel)
        return sig

    def subscribe(self, channel: str, callback: Callable[[Event], Any]) -> Callable[[Event], Any]:
        self._signal(channel).connect(callback, weak=False)
        return callback

    def unsubscribe(self, channel: str, callback: Callable[[Event], Any]) -> None:
        self._signal(channel).disconnect(callback)

    def listeners_for(self, channel: str) -> list[Callable[[Event], Any]]:
        sig = self._signals.get(channel)
        if sig is None:
            return []
        listeners = []
        for receiver in list(sig.receivers.values()):
            if isinstance(receiver, weakref.ref):
                receiver = receiver()
            if receiver is not None:
                listeners.append(receiver)
        return listeners

    def publish(self, channel: str, payload: dict | None = None,
                start: float | None = None, end: float | None = None) -> Event:
        """Deliver an event to every subscriber of channel and return it."""
        now = time.perf_counter()
        event = Event(
            name=channel,
            start=now if start is None else start,
            end=now if end is None else end,
            payload=payload if payload is not None else {},
        )
        sig = self._signals.get(channel)
        if sig is not None:
            sig.send(event)
        return event

    @contextmanager
    def instrument(self, channel: str, **payload):
        """Time the enclosed block and publish it on exit.

        The payload dict is yielded so the block can add keys. If the block
        raises, the exception is recorded as ``(class name, message)`` before
        publishing and then re-raised.
        """
        start = time.perf_counter()
        try:
            yield payload
        except Exception as e:
            payload["exception"] = (type(e).__name__, str(e))
            payload["exception_object"] = e
            raise
        finally:
            self.publish(channel, payload, start=start, end=time.perf_counter())
