"""Turns request lifecycle notifications into structured log lines."""

import logging

from stasher import extractors
from stasher.formatter import format_event
from stasher.scope import CurrentScope

logger = logging.getLogger(__name__)

# event methods handled per notification namespace
NAMESPACES = {
    "controller": ("start_processing", "process_action", "redirect_to"),
    "database": ("sql",),
}


def channels_for(namespace: str) -> list[str]:
    if namespace not in NAMESPACES:
        raise ValueError(f"Unknown notification namespace: {namespace!r}")
    return [f"{event}.{namespace}" for event in NAMESPACES[namespace]]


class LogSubscriber:
    def __init__(self, pipeline):
        self.pipeline = pipeline

    def start_processing(self, event):
        fields = {}
        fields.update(self.extract_request(event.payload))
        fields.update(self.extract_current_scope())
        self.log_event(["request"], fields)

    def sql(self, event):
        if extractors.is_suppressed_sql(event.payload):
            return
        fields = {}
        fields.update(self.extract_sql(event.payload, event.duration))
        fields.update(self.extract_current_scope())
        self.log_event(["sql"], fields)

    def redirect_to(self, event):
        CurrentScope["location"] = event.payload.get("location")

    def process_action(self, event):
        try:
            payload = event.payload
            fields = {}
            fields.update(self.extract_request(payload))
            fields.update(self.extract_status(payload))
            fields.update(self.runtimes(event))
            exception = self.extract_exception(payload)
            fields.update(exception)
            fields.update(self.extract_current_scope())

            tags = ["response"]
            if exception:
                tags.append("exception")
            self.log_event(tags, fields)
        finally:
            CurrentScope.clear()

    def log_event(self, tags, fields, hook=None):
        if isinstance(tags, str):
            tags = [tags]
        line = format_event(self.pipeline.source, tags, fields, self.pipeline.now(), hook)
        self.pipeline.logger.write(line + "\n")

    def extract_request(self, payload):
        return extractors.extract_request(payload, self.pipeline.filter_parameters)

    def extract_status(self, payload):
        return extractors.extract_status(payload)

    def runtimes(self, event):
        return extractors.runtimes(event)

    def extract_exception(self, payload):
        return extractors.extract_exception(payload)

    def extract_sql(self, payload, duration):
        return extractors.extract_sql(payload, duration)

    def extract_current_scope(self):
        return extractors.extract_current_scope()

    def attach_to(self, notifier, namespace: str) -> list[str]:
        """Subscribe this subscriber's handlers to every channel of namespace."""
        attached = []
        for channel in channels_for(namespace):
            handler = getattr(self, channel.split(".", 1)[0])
            if handler in notifier.listeners_for(channel):
                continue
            notifier.subscribe(channel, handler)
            attached.append(channel)
        logger.debug("Attached to %d channel(s) in namespace %s", len(attached), namespace)
        return attached
