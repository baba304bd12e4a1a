"""In-memory caches of users, user groups and monitored targets."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from nightwatch.caches import StatCache


@dataclass
class User:
    """A user who can receive notifications."""

    id: int = 0
    username: str = ""
    nickname: str = ""
    maintainer: int = 0
    tokens: dict[str, str] = field(default_factory=dict)


@dataclass
class UserGroup:
    """A named group of users."""

    id: int = 0
    name: str = ""
    user_ids: list[int] = field(default_factory=list)


def parse_target_tags(tags: str) -> tuple[list[str], dict[str, str]]:
    """Split a whitespace-separated tag string into its items and a key/value map.

    Items that are not exactly ``key=value`` stay in the list but are left
    out of the map.
    """
    items = tags.split()
    tag_map: dict[str, str] = {}
    for item in items:
        parts = item.split("=")
        if len(parts) != 2:
            continue
        tag_map[parts[0]] = parts[1]
    return items, tag_map


@dataclass
class Target:
    """A monitored host, identified by its ident."""

    ident: str = ""
    cluster: str = ""
    note: str = ""
    group_id: int = 0
    tags: str = ""
    update_at: int = 0
    tags_json: list[str] = field(init=False, default_factory=list)
    tags_map: dict[str, str] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        self.tags_json, self.tags_map = parse_target_tags(self.tags)


class UserCache(StatCache):
    """Users keyed by id."""

    def set(self, users: Mapping[int, User], total: int, last_updated: int) -> None:
        """Replace all users and record the statistics they were loaded with."""
        self._store(users, total, last_updated)

    def get(self, user_id: int) -> User | None:
        """The user with ``user_id``, or None."""
        with self._lock:
            return self._data.get(user_id)

    def get_many(self, ids: Iterable[int]) -> list[User]:
        """Users for ``ids`` in the given order, skipping unknown and repeated ids."""
        seen: set[int] = set()
        users: list[User] = []
        with self._lock:
            for user_id in ids:
                user = self._data.get(user_id)
                if user is None or user_id in seen:
                    continue
                users.append(user)
                seen.add(user_id)
        return users

    def maintainers(self) -> list[User]:
        """All users flagged as maintainers."""
        with self._lock:
            return [user for user in self._data.values() if user.maintainer == 1]


class UserGroupCache(StatCache):
    """User groups keyed by id."""

    def set(
        self, groups: Mapping[int, UserGroup], total: int, last_updated: int
    ) -> None:
        """Replace all groups and record the statistics they were loaded with."""
        self._store(groups, total, last_updated)

    def get(self, group_id: int) -> UserGroup | None:
        """The group with ``group_id``, or None."""
        with self._lock:
            return self._data.get(group_id)

    def get_many(self, ids: Iterable[int]) -> list[UserGroup]:
        """Groups for ``ids`` in the given order, skipping unknown and repeated ids."""
        seen: set[int] = set()
        groups: list[UserGroup] = []
        with self._lock:
            for group_id in ids:
                group = self._data.get(group_id)
                if group is None or group_id in seen:
                    continue
                groups.append(group)
                seen.add(group_id)
        return groups


class TargetCache(StatCache):
    """Targets keyed by ident."""

    def set(
        self, targets: Mapping[str, Target], total: int, last_updated: int
    ) -> None:
        """Replace all targets and record the statistics they were loaded with."""
        self._store(targets, total, last_updated)

    def get(self, ident: str) -> Target | None:
        """The target with ``ident``, or None."""
        with self._lock:
            return self._data.get(ident)

    def deads(self, actives: Iterable[str]) -> dict[str, Target]:
        """Targets whose ident is not among ``actives``."""
        active = set(actives)
        with self._lock:
            return {
                ident: target
                for ident, target in self._data.items()
                if ident not in active
            }