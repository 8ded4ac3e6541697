"""Structured JSON request logging.

The module-level functions act on one process-wide pipeline::

    import stasher
    stasher.setup(stasher.load_config("stasher.yml"))
    stasher.warn("disk almost full")
    stasher.CurrentScope["user_id"] = 42
"""

from stasher.config import StasherConfig, load_config
from stasher.errors import ConfigurationError, StasherError
from stasher.pipeline import Stasher
from stasher.scope import CurrentScope
from stasher.severity import Severity

__version__ = "0.3.0"

pipeline = Stasher()

setup = pipeline.setup
log = pipeline.log
fatal = pipeline.fatal
error = pipeline.error
warn = pipeline.warn
warning = pipeline.warning
info = pipeline.info
debug = pipeline.debug
unknown = pipeline.unknown
add_custom_fields = pipeline.add_custom_fields
format_exception = Stasher.format_exception

__all__ = [
    "ConfigurationError",
    "CurrentScope",
    "Severity",
    "Stasher",
    "StasherConfig",
    "StasherError",
    "add_custom_fields",
    "debug",
    "error",
    "fatal",
    "format_exception",
    "info",
    "load_config",
    "log",
    "pipeline",
    "setup",
    "unknown",
    "warn",
    "warning",
]
