"""Severity-gated loggers.

SeverityLogger owns the sink and the minimum level the pipeline checks before
building an event. RedirectLogger is the application-facing variant: instead
of writing to a sink it hands each accepted message to the pipeline.
"""

from datetime import datetime, timezone
from typing import Any, Callable

from stasher.severity import Severity, should_log


def simple_formatter(severity: str, time: datetime, progname: str | None, message: str) -> str:
    return message


class SeverityLogger:
    def __init__(self, sink=None, level=Severity.WARN,
                 formatter: Callable[[str, datetime, str | None, str], str] | None = None):
        self.sink = sink
        self.level = level
        self.formatter = formatter or simple_formatter

    @property
    def level(self) -> Severity:
        return self._level

    @level.setter
    def level(self, value) -> None:
        self._level = Severity.parse(value)

    def is_enabled_for(self, severity) -> bool:
        return should_log(severity, self._level)

    def format_message(self, severity: str, time: datetime, progname: str | None, message: str) -> str:
        return self.formatter(severity, time, progname, message)

    def add(self, severity, message: Any = None, progname: str | None = None,
            block: Callable[[], Any] | None = None) -> bool:
        """Log message at severity; always returns True.

        Nothing is evaluated below the configured level: the block is not
        called and the message is not formatted. Strings are run through
        format_message; any other value (an exception, say) is passed on as is.
        """
        severity = Severity.parse(severity)
        if severity < self._level:
            return True

        if message is None and block is not None:
            message = block()

        if isinstance(message, str):
            message = self.format_message(severity.label, datetime.now(timezone.utc), progname, message)

        self._emit(severity, message)
        return True

    def _emit(self, severity: Severity, message: Any) -> None:
        if message is None:
            return
        text = message if isinstance(message, str) else str(message)
        self.write(text if text.endswith("\n") else text + "\n")

    def write(self, line: str) -> None:
        """Write a finished line to the sink, bypassing level checks."""
        self.sink.write(line)

    def debug(self, message=None, progname=None, block=None) -> bool:
        return self.add(Severity.DEBUG, message, progname, block)

    def info(self, message=None, progname=None, block=None) -> bool:
        return self.add(Severity.INFO, message, progname, block)

    def warn(self, message=None, progname=None, block=None) -> bool:
        return self.add(Severity.WARN, message, progname, block)

    warning = warn

    def error(self, message=None, progname=None, block=None) -> bool:
        return self.add(Severity.ERROR, message, progname, block)

    def fatal(self, message=None, progname=None, block=None) -> bool:
        return self.add(Severity.FATAL, message, progname, block)

    def unknown(self, message=None, progname=None, block=None) -> bool:
        return self.add(Severity.UNKNOWN, message, progname, block)


class RedirectLogger(SeverityLogger):
    """Logger handed to application code; accepted messages become pipeline log lines."""

    def __init__(self, pipeline, level=Severity.WARN, formatter=None):
        super().__init__(sink=None, level=level, formatter=formatter)
        self.pipeline = pipeline

    def _emit(self, severity: Severity, message: Any) -> None:
        self.pipeline.log(severity.label, message)

    def write(self, line: str) -> None:
        self.pipeline.log(Severity.UNKNOWN.label, line.rstrip("\n"))
