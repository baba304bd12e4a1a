import pytest

from nightwatch.directory import (
    Target,
    TargetCache,
    User,
    UserCache,
    UserGroup,
    UserGroupCache,
    parse_target_tags,
)


def test_parse_target_tags_keeps_all_items_but_maps_only_pairs():
    items, tag_map = parse_target_tags("a=1  b=2 bad c=d=e")
    assert items == ["a=1", "b=2", "bad", "c=d=e"]
    assert tag_map == {"a": "1", "b": "2"}


def test_parse_target_tags_empty():
    assert parse_target_tags("   ") == ([], {})


def test_target_parses_its_tags():
    target = Target(ident="host1", tags="env=prod region=east")
    assert target.tags_json == ["env=prod", "region=east"]
    assert target.tags_map == {"env": "prod", "region": "east"}


@pytest.fixture
def users():
    cache = UserCache()
    cache.set(
        {
            1: User(id=1, username="alice", maintainer=1),
            2: User(id=2, username="bob"),
            3: User(id=3, username="carol", maintainer=1),
        },
        3,
        100,
    )
    return cache


def test_user_get(users):
    assert users.get(2).username == "bob"
    assert users.get(99) is None


def test_user_get_many_dedupes_and_skips_unknown(users):
    result = users.get_many([3, 99, 1, 3, 1])
    assert [u.id for u in result] == [3, 1]


def test_user_get_many_empty(users):
    assert users.get_many([42]) == []


def test_user_maintainers(users):
    assert sorted(u.username for u in users.maintainers()) == ["alice", "carol"]


def test_user_cache_stat_changed(users):
    assert users.stat_changed(3, 100) is False
    assert users.stat_changed(4, 100) is True
    users.reset()
    assert users.stat_changed(3, 100) is True
    assert users.get(1) is None


def test_user_group_get_many():
    cache = UserGroupCache()
    cache.set(
        {10: UserGroup(id=10, name="ops", user_ids=[1, 2]), 20: UserGroup(id=20, name="dev")},
        2,
        5,
    )
    result = cache.get_many([20, 10, 20, 30])
    assert [g.name for g in result] == ["dev", "ops"]
    assert cache.get(10).user_ids == [1, 2]
    assert cache.get(30) is None


def test_target_cache_deads():
    cache = TargetCache()
    cache.set(
        {"h1": Target(ident="h1"), "h2": Target(ident="h2"), "h3": Target(ident="h3")},
        3,
        7,
    )
    deads = cache.deads({"h2"})
    assert set(deads) == {"h1", "h3"}
    assert deads["h1"].ident == "h1"
    assert cache.deads(["h1", "h2", "h3"]) == {}


def test_target_cache_get():
    cache = TargetCache()
    cache.set({"h1": Target(ident="h1", note="web")}, 1, 1)
    assert cache.get("h1").note == "web"
    assert cache.get("nope") is None
    assert len(cache) == 1