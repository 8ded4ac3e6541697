"""Configuration loading from an optional YAML file and environment variables.

Precedence: environment > YAML file > defaults. The YAML file may hold the
settings at the top level or under a ``stasher:`` section.
"""

import copy
import logging
import os
from dataclasses import dataclass, field

import yaml

from stasher.extractors import DEFAULT_FILTER_PARAMETERS

logger = logging.getLogger(__name__)

DEFAULTS = {
    "source": None,
    "app_name": None,
    "scheme": "python",
    "log_level": None,
    "log_file": None,
    "stream": None,
    "attach_to": [],
    "redirect_logger": False,
    "suppress_app_log": True,
    "filter_parameters": list(DEFAULT_FILTER_PARAMETERS),
    "default_origins": ["flask", "werkzeug"],
}

ENV_VARS = {
    "STASHER_SOURCE": "source",
    "STASHER_APP_NAME": "app_name",
    "STASHER_LOG_LEVEL": "log_level",
    "STASHER_LOG_FILE": "log_file",
    "STASHER_STREAM": "stream",
    "STASHER_REDIRECT_LOGGER": "redirect_logger",
    "STASHER_SUPPRESS_APP_LOG": "suppress_app_log",
}

_BOOL_KEYS = {"redirect_logger", "suppress_app_log"}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class StasherConfig:
    source: str | None = None
    app_name: str | None = None
    scheme: str = "python"
    log_level: str | None = None      # None means WARN
    log_file: str | None = None
    stream: str | None = None         # "stdout" or "stderr"
    attach_to: tuple[str, ...] = ()
    redirect_logger: bool = False
    suppress_app_log: bool = True
    filter_parameters: tuple[str, ...] = DEFAULT_FILTER_PARAMETERS
    default_origins: tuple[str, ...] = ("flask", "werkzeug")

    @classmethod
    def from_dict(cls, d: dict) -> "StasherConfig":
        merged = _deep_merge(DEFAULTS, d or {})
        return cls(
            source=merged["source"],
            app_name=merged["app_name"],
            scheme=merged["scheme"],
            log_level=merged["log_level"],
            log_file=merged["log_file"],
            stream=merged["stream"],
            attach_to=tuple(merged["attach_to"] or ()),
            redirect_logger=bool(merged["redirect_logger"]),
            suppress_app_log=bool(merged["suppress_app_log"]),
            filter_parameters=tuple(merged["filter_parameters"] or ()),
            default_origins=tuple(merged["default_origins"] or ()),
        )


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override dict into base dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path or file missing."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s does not hold a mapping, ignoring it", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return data.get("stasher", data)


def env_overrides(environ=None) -> dict:
    environ = os.environ if environ is None else environ
    overrides = {}
    for var, key in ENV_VARS.items():
        if var in environ:
            value = environ[var]
            overrides[key] = _parse_bool(value) if key in _BOOL_KEYS else value
    if "STASHER_ATTACH_TO" in environ:
        overrides["attach_to"] = [n.strip() for n in environ["STASHER_ATTACH_TO"].split(",") if n.strip()]
    return overrides


def load_config(path: str | None = None, environ=None) -> StasherConfig:
    """Build StasherConfig from YAML (path or STASHER_CONFIG) and env vars."""
    environ = os.environ if environ is None else environ
    data = load_yaml_config(path or environ.get("STASHER_CONFIG"))
    data = _deep_merge(data, env_overrides(environ))
    return StasherConfig.from_dict(data)
