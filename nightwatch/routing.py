"""Routers mapping an alert event to the subscribers who should hear of it."""

from __future__ import annotations

import re
from typing import Any

from nightwatch.events import AlertEvent
from nightwatch.subscription import NotifyChannels, Subscription

_INT_RE = re.compile(r"^[+-]?[0-9]+$")


def _parse_group_ids(values: list[str]) -> list[int]:
    return [int(value) for value in values if _INT_RE.match(value)]


def group_router(event: AlertEvent, user_groups: Any) -> Subscription:
    """Subscribe every member of the event's notify groups to its channels.

    ``user_groups`` provides ``get_many(ids)``; group ids that are not
    integers are ignored.
    """
    subscription = Subscription()
    for group in user_groups.get_many(_parse_group_ids(event.notify_groups)):
        for user_id in group.user_ids:
            subscription.user_map[user_id] = NotifyChannels.from_channels(
                event.notify_channels
            )
    return subscription


def global_webhook_router(webhook: Any) -> Subscription | None:
    """A subscription holding the global webhook, or None if it is disabled."""
    if webhook is None or not webhook.enable:
        return None
    subscription = Subscription()
    subscription.webhooks[webhook.url] = webhook
    return subscription


def event_callbacks_router(event: AlertEvent, prev: Subscription) -> None:
    """Add the event's non-empty callbacks to ``prev`` in place."""
    prev.callbacks.update(callback for callback in event.callbacks if callback)
    return None