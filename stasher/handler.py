"""Bridges stdlib logging into the pipeline."""

import logging

from stasher.logger import RedirectLogger
from stasher.severity import Severity

LEVEL_MAP = {
    logging.DEBUG: Severity.DEBUG,
    logging.INFO: Severity.INFO,
    logging.WARNING: Severity.WARN,
    logging.ERROR: Severity.ERROR,
    logging.CRITICAL: Severity.FATAL,
}


STDLIB_LEVELS = {severity: levelno for levelno, severity in LEVEL_MAP.items()}


def severity_for(levelno: int) -> Severity:
    return LEVEL_MAP.get(levelno, Severity.UNKNOWN)


def stdlib_level_for(severity) -> int:
    return STDLIB_LEVELS.get(Severity.parse(severity), logging.CRITICAL)


class StasherHandler(logging.Handler):
    """logging.Handler that re-emits records as structured pipeline lines.

    Level filtering is left to the wrapped RedirectLogger so stdlib records and
    direct calls obey the same minimum level.
    """

    def __init__(self, pipeline, level=Severity.DEBUG):
        super().__init__(logging.NOTSET)
        self.redirect = RedirectLogger(pipeline, level=level)

    def emit(self, record: logging.LogRecord) -> None:
        severity = severity_for(record.levelno)
        if not self.redirect.is_enabled_for(severity):
            return
        try:
            if record.exc_info and record.exc_info[1] is not None:
                message = record.exc_info[1]
            elif isinstance(record.msg, BaseException) and not record.args:
                message = record.msg
            else:
                message = self.format(record)
            self.redirect.add(severity, message, progname=record.name)
        except Exception:
            self.handleError(record)
