from dataclasses import dataclass

from nightwatch.directory import UserGroup, UserGroupCache
from nightwatch.events import AlertEvent
from nightwatch.routing import event_callbacks_router, global_webhook_router, group_router
from nightwatch.subscription import Subscription


@dataclass
class Webhook:
    enable: bool
    url: str


def make_groups():
    cache = UserGroupCache()
    cache.set(
        {1: UserGroup(id=1, user_ids=[10, 11]), 2: UserGroup(id=2, user_ids=[12])},
        2,
        0,
    )
    return cache


def test_group_router_maps_members_to_channels():
    event = AlertEvent(notify_groups=["1", "x", "2"], notify_channels=["email", "wecom"])
    subscription = group_router(event, make_groups())
    assert sorted(subscription.user_map) == [10, 11, 12]
    assert subscription.user_map[12] == {"email": True, "wecom": True}


def test_group_router_ignores_unknown_groups():
    event = AlertEvent(notify_groups=["99"], notify_channels=["email"])
    assert group_router(event, make_groups()).user_map == {}


def test_group_router_channel_user_map():
    event = AlertEvent(notify_groups=["2"], notify_channels=["email"])
    assert group_router(event, make_groups()).to_channel_user_map() == {"email": [12]}


def test_global_webhook_disabled():
    assert global_webhook_router(Webhook(False, "http://localhost/hook")) is None


def test_global_webhook_enabled():
    hook = Webhook(True, "http://localhost/hook")
    subscription = global_webhook_router(hook)
    assert subscription.to_webhook_list() == [hook]


def test_event_callbacks_router_modifies_prev():
    prev = Subscription()
    event = AlertEvent(callbacks=["http://localhost/a", "", "http://localhost/b"])
    result = event_callbacks_router(event, prev)
    assert result is None
    assert sorted(prev.to_callback_list()) == ["http://localhost/a", "http://localhost/b"]