"""Who gets notified of an event, and through which channels."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


class NotifyChannels(dict):
    """Mapping of channel name to whether the channel should be used."""

    @classmethod
    def from_channels(cls, channels: Iterable[str]) -> NotifyChannels:
        """Enable every channel in ``channels``."""
        return cls((channel, True) for channel in channels)

    def or_merge(self, other: Mapping[str, bool] | None) -> None:
        """Merge ``other`` in, combining shared channels with logical or."""
        self._merge(other, lambda a, b: a or b)

    def and_merge(self, other: Mapping[str, bool] | None) -> None:
        """Merge ``other`` in, combining shared channels with logical and."""
        self._merge(other, lambda a, b: a and b)

    def _merge(
        self, other: Mapping[str, bool] | None, combine: Callable[[bool, bool], bool]
    ) -> None:
        if other is None:
            return
        for channel, enabled in other.items():
            self[channel] = combine(self[channel], enabled) if channel in self else enabled


@dataclass
class Subscription:
    """Users with their channels, plus webhooks and callbacks, deduplicated."""

    user_map: dict[int, NotifyChannels] = field(default_factory=dict)
    webhooks: dict[str, Any] = field(default_factory=dict)
    callbacks: set[str] = field(default_factory=set)

    @classmethod
    def from_users(cls, users: Iterable[Any]) -> Subscription:
        """Build a subscription from users' contact tokens.

        Each user needs an ``id`` and a ``tokens`` mapping of channel to
        token; channels with an empty token are skipped, as are None users.
        """
        subscription = cls()
        for user in users:
            if user is None:
                continue
            for channel, token in user.tokens.items():
                if not token:
                    continue
                subscription.user_map.setdefault(user.id, NotifyChannels())[channel] = True
        return subscription

    def or_merge(self, other: Subscription | None) -> None:
        """Merge ``other`` in, enabling a channel if either side enables it."""
        self._merge(other, NotifyChannels.or_merge)

    def and_merge(self, other: Subscription | None) -> None:
        """Merge ``other`` in, keeping a channel only if both sides enable it."""
        self._merge(other, NotifyChannels.and_merge)

    def _merge(
        self,
        other: Subscription | None,
        combine: Callable[[NotifyChannels, NotifyChannels], None],
    ) -> None:
        if other is None:
            return
        for uid, channels in other.user_map.items():
            if uid in self.user_map:
                combine(self.user_map[uid], channels)
            else:
                self.user_map[uid] = NotifyChannels(channels)
        self.webhooks.update(other.webhooks)
        self.callbacks.update(other.callbacks)

    def to_channel_user_map(self) -> dict[str, list[int]]:
        """Invert the user map into channel -> user ids with that channel enabled."""
        result: dict[str, list[int]] = {}
        for uid, channels in self.user_map.items():
            for channel, enabled in channels.items():
                if enabled:
                    result.setdefault(channel, []).append(uid)
        return result

    def to_callback_list(self) -> list[str]:
        """All callback URLs."""
        return list(self.callbacks)

    def to_webhook_list(self) -> list[Any]:
        """All webhook configurations."""
        return list(self.webhooks.values())