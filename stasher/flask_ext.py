"""Flask integration: publishes the request lifecycle on the pipeline's notifier.

Settings are read from ``app.config["STASHER"]`` (same keys as the YAML file)
when the pipeline has not been set up yet.
"""

import logging
import time

from flask import Flask, g, request

from stasher.config import StasherConfig
from stasher.scope import CurrentScope

logger = logging.getLogger(__name__)


def request_payload(app: Flask) -> dict:
    endpoint = request.endpoint or ""
    controller, _, action = endpoint.rpartition(".")

    params = dict(request.view_args or {})
    params.update(request.args.to_dict())
    params.update(request.form.to_dict())
    if request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            params.update(body)

    headers = {}
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        headers["X-Forwarded-For"] = forwarded

    return {
        "method": request.method,
        "path": request.path,
        "params": params,
        "format": request.accept_mimetypes.best or request.mimetype or None,
        "controller": controller or app.name,
        "action": action or None,
        "headers": headers,
        "remote_addr": request.remote_addr,
    }


def init_app(app: Flask, pipeline=None, config: StasherConfig | None = None, sink=None):
    """Hook the pipeline into app's request handling and return the pipeline."""
    if pipeline is None:
        import stasher
        pipeline = stasher.pipeline

    if not pipeline.enabled:
        if config is None:
            settings = dict(app.config.get("STASHER", {}))
            settings.setdefault("app_name", app.name)
            settings.setdefault("scheme", "flask")
            config = StasherConfig.from_dict(settings)
        pipeline.setup(config, sink=sink)

    notifier = pipeline.notifier

    @app.before_request
    def _stasher_start_processing():
        if not pipeline.enabled:
            return
        CurrentScope.clear()
        g._stasher_started = time.perf_counter()
        pipeline.add_default_fields_to_scope(CurrentScope, request)
        pipeline.add_custom_fields_to_scope(CurrentScope, request)
        notifier.publish("start_processing.controller", request_payload(app))

    @app.after_request
    def _stasher_record_response(response):
        if not pipeline.enabled or "_stasher_started" not in g:
            return response
        g._stasher_status = response.status_code
        if 300 <= response.status_code < 400 and response.location:
            notifier.publish("redirect_to.controller", {
                "location": response.location,
                "status": response.status_code,
            })
        return response

    @app.teardown_request
    def _stasher_process_action(exc):
        started = g.pop("_stasher_started", None)
        try:
            if started is None or not pipeline.enabled:
                return
            payload = request_payload(app)
            payload["status"] = g.pop("_stasher_status", None)
            if exc is not None:
                payload["exception"] = exc
            notifier.publish("process_action.controller", payload,
                             start=started, end=time.perf_counter())
        finally:
            CurrentScope.clear()

    app.extensions["stasher"] = pipeline
    logger.info("Stasher request logging installed on %s", app.name)
    return pipeline
