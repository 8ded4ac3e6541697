"""Pipeline facade: configuration, direct log calls and wiring of the subscriber."""

import logging
import re
import socket
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from stasher import extractors
from stasher.config import StasherConfig
from stasher.errors import ConfigurationError
from stasher.formatter import format_event
from stasher.handler import StasherHandler, stdlib_level_for
from stasher.logger import SeverityLogger
from stasher.notifications import Notifier
from stasher.scope import CurrentScope
from stasher.severity import Severity
from stasher.sinks import sink_for
from stasher.subscriber import LogSubscriber
from stasher.subscriptions import all_channels, attach, remove_existing_log_subscriptions

logger = logging.getLogger(__name__)

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")

# loggers whose per-request lines duplicate the response event
HOST_REQUEST_LOGGERS = ("werkzeug",)


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE.sub("", text)


def build_source(app_name: str, hostname: str | None = None, scheme: str = "python") -> str:
    return f"{scheme}://{hostname or socket.gethostname()}/{app_name}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Stasher:
    """Process-wide entry point.

    Holds the sink logger, the source identifier and the enabled flag, and
    exposes ``log`` plus one call per severity. ``setup`` is meant to run once
    at application start; everything it sets is read-only afterwards except
    ``enabled`` and ``level``.
    """

    def __init__(self, logger: SeverityLogger | None = None, source: str | None = None,
                 notifier: Notifier | None = None, clock: Callable[[], datetime] | None = None,
                 filter_parameters=extractors.DEFAULT_FILTER_PARAMETERS):
        self.logger = logger
        self.source = source
        self.enabled = False
        self.notifier = notifier or Notifier()
        self.clock = clock or _utcnow
        self.filter_parameters = tuple(filter_parameters)
        self.default_origins: tuple[str, ...] = ()
        self.subscriber = LogSubscriber(self)
        self.handler: StasherHandler | None = None
        self._redirected: list[logging.Logger] = []
        self._owns_sink = False
        self._custom_fields: list[Callable[[Any, Any], Any]] = []

    def now(self) -> datetime:
        return self.clock()

    @property
    def level(self) -> Severity:
        return self.logger.level

    @level.setter
    def level(self, value) -> None:
        self.logger.level = value
        if self.handler is not None:
            self.handler.redirect.level = value
        for target in self._redirected:
            target.setLevel(stdlib_level_for(self.logger.level))

    # -- setup -----------------------------------------------------------

    def setup(self, config: StasherConfig | None = None, sink=None,
              notifier: Notifier | None = None, hostname: str | None = None) -> "Stasher":
        """Configure the pipeline and attach it to the notifier.

        Raises ConfigurationError when there is nowhere to write to, no way to
        name the source, or the log level is not a known severity.
        """
        config = config or StasherConfig()

        source = config.source
        if not source:
            if not config.app_name:
                raise ConfigurationError("No source configured: set source or app_name")
            source = build_source(config.app_name, hostname, config.scheme)

        try:
            level = Severity.parse(config.log_level) if config.log_level else Severity.WARN
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        owns_sink = sink is None
        if owns_sink:
            try:
                sink = sink_for(config.log_file, config.stream)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        if sink is None:
            raise ConfigurationError("No sink configured: set log_file or stream, or pass a sink")

        self._close_sink()
        self.logger = SeverityLogger(sink, level=level)
        self._owns_sink = owns_sink
        self.source = source
        self.filter_parameters = tuple(config.filter_parameters)
        self.default_origins = tuple(config.default_origins)
        if notifier is not None:
            self.notifier = notifier

        if config.suppress_app_log:
            self.suppress_app_logs()

        namespaces = ["controller"] + [n for n in config.attach_to if n != "controller"]
        attach(self.notifier, self.subscriber, namespaces)

        if config.redirect_logger:
            self.redirect_logger()

        self.enabled = True
        logger.info("Stasher enabled: source=%s level=%s", self.source, level.label)
        return self

    def suppress_app_logs(self, origins=None) -> int:
        """Drop the host's default subscribers and quiet its per-request log lines."""
        removed = self.remove_existing_log_subscriptions(origins)
        for name in HOST_REQUEST_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        return removed

    def remove_existing_log_subscriptions(self, origins=None) -> int:
        origins = self.default_origins if origins is None else origins
        return remove_existing_log_subscriptions(self.notifier, all_channels(), origins)

    def redirect_logger(self, name: str | None = None) -> StasherHandler:
        """Route stdlib logging (the root logger by default) into the pipeline."""
        if self.handler is None:
            self.handler = StasherHandler(self, level=self.logger.level)
        self.handler.redirect.level = self.logger.level
        target = logging.getLogger(name)
        if self.handler not in target.handlers:
            target.addHandler(self.handler)
        if target not in self._redirected:
            self._redirected.append(target)
        target.setLevel(stdlib_level_for(self.logger.level))
        return self.handler

    def shutdown(self) -> None:
        """Detach the stdlib handler, close the sink if setup opened it and disable the pipeline."""
        if self.handler is not None:
            for target in self._redirected:
                target.removeHandler(self.handler)
            self.handler = None
        self._redirected = []
        self._close_sink()
        self.enabled = False

    def _close_sink(self) -> None:
        if self._owns_sink and self.logger is not None:
            self.logger.sink.close()
        self._owns_sink = False

    # -- per-request scope -------------------------------------------------

    def add_default_fields_to_scope(self, scope, request) -> None:
        request_id = getattr(request, "uuid", None)
        if not request_id:
            headers = getattr(request, "headers", None)
            request_id = headers.get("X-Request-Id") if headers is not None else None
        scope["uuid"] = request_id or uuid.uuid4().hex

    def add_custom_fields(self, fn: Callable[[Any, Any], Any]) -> Callable[[Any, Any], Any]:
        """Register fn(scope, request), called at the start of every request.

        Returns fn so it can be used as a decorator.
        """
        self._custom_fields.append(fn)
        return fn

    def add_custom_fields_to_scope(self, scope, request) -> None:
        for fn in self._custom_fields:
            fn(scope, request)

    # -- logging -----------------------------------------------------------

    @staticmethod
    def format_exception(name, message, backtrace) -> dict:
        return extractors.format_exception(name, message, backtrace)

    def log(self, severity, message: Any) -> bool:
        """Write one log line for message at severity.

        Exceptions are logged under the ``exception`` field; anything else is
        logged as text with ANSI colour codes removed. Returns True, including
        when the severity is filtered out.
        """
        severity = Severity.parse(severity)
        if self.logger is None or not self.logger.is_enabled_for(severity):
            return True

        tags = ["log", severity.label.lower()]
        text = None
        if isinstance(message, BaseException):
            fields = extractors.exception_fields(message)
            tags.append("exception")
        else:
            fields = {"severity": severity.label}
            text = strip_ansi("" if message is None else str(message))
        fields.update(CurrentScope.fields())

        line = format_event(self.source, tags, fields, self.now(), message=text)
        self.logger.write(line + "\n")
        return True

    def fatal(self, message) -> bool:
        return self.log(Severity.FATAL, message)

    def error(self, message) -> bool:
        return self.log(Severity.ERROR, message)

    def warn(self, message) -> bool:
        return self.log(Severity.WARN, message)

    warning = warn

    def info(self, message) -> bool:
        return self.log(Severity.INFO, message)

    def debug(self, message) -> bool:
        return self.log(Severity.DEBUG, message)

    def unknown(self, message) -> bool:
        return self.log(Severity.UNKNOWN, message)
