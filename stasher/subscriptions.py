"""Attaches the pipeline to notification channels and evicts the host's default subscribers."""

import logging

from stasher.subscriber import NAMESPACES, channels_for

logger = logging.getLogger(__name__)


def origin_of(callback) -> str:
    """Module a subscriber was defined in."""
    module = getattr(callback, "__module__", None)
    if not module:
        module = type(callback).__module__
    return module or ""


def is_from(callback, origins) -> bool:
    module = origin_of(callback)
    return any(module == o or module.startswith(o + ".") for o in origins)


def all_channels(namespaces=None) -> list[str]:
    channels = []
    for namespace in namespaces or NAMESPACES:
        channels.extend(channels_for(namespace))
    return channels


def remove_existing_log_subscriptions(notifier, channels, origins) -> int:
    """Unsubscribe listeners that came from the host's own instrumentation.

    Only listeners defined in one of the origins modules (or their submodules)
    are removed; subscribers added by anything else stay in place.
    """
    origins = tuple(origins)
    removed = 0
    for channel in channels:
        for callback in notifier.listeners_for(channel):
            if is_from(callback, origins):
                notifier.unsubscribe(channel, callback)
                removed += 1
    if removed:
        logger.info("Removed %d default log subscriber(s)", removed)
    return removed


def attach(notifier, subscriber, namespaces) -> list[str]:
    attached = []
    for namespace in namespaces:
        attached.extend(subscriber.attach_to(notifier, namespace))
    logger.info("Log subscriber attached to %s", ", ".join(namespaces))
    return attached
