from __future__ import annotations

import pytest

from chat_router.directory import DuplicateNicknamePolicy, SessionDirectory
from chat_router.exceptions import DuplicateGroup, InvalidRequest, NicknameTaken, NoValidMembers
from chat_router.groups import GroupRegistry


def test_directory_upsert_and_lookup() -> None:
    directory = SessionDirectory()
    directory.set_nickname("c1", "alice")
    directory.set_nickname("c2", "bob")
    directory.set_nickname("c1", "alicia")

    assert directory.nickname_of("c1") == "alicia"
    assert directory.connection_of("alicia") == "c1"
    assert directory.connection_of("alice") is None
    assert directory.all_nicknames() == ["alicia", "bob"]


def test_directory_unknown_sentinel_and_remove() -> None:
    directory = SessionDirectory(unknown_nickname="Anon")
    directory.set_nickname("c1", "alice")

    assert directory.remove("c1") == "alice"
    assert directory.remove("c1") is None
    assert directory.nickname_of("c1") == "Anon"
    assert not directory.has_nickname("c1")
    assert len(directory) == 0


def test_directory_rejects_nickname_held_by_other_connection() -> None:
    directory = SessionDirectory()
    directory.set_nickname("c1", "alice")
    directory.set_nickname("c1", "alice")

    with pytest.raises(NicknameTaken):
        directory.set_nickname("c2", "alice")

    assert "c2" not in directory
    assert directory.all_nicknames() == ["alice"]


def test_directory_allow_policy_keeps_first_match() -> None:
    directory = SessionDirectory(policy=DuplicateNicknamePolicy.ALLOW)
    directory.set_nickname("c1", "alice")
    directory.set_nickname("c2", "alice")

    assert directory.connection_of("alice") == "c1"
    assert directory.all_nicknames() == ["alice", "alice"]

    directory.remove("c1")
    assert directory.connection_of("alice") == "c2"


def test_group_creation_is_deterministic() -> None:
    registry = GroupRegistry()

    group = registry.create("G", ["x", "y"], "z", online=["x", "z"])

    assert group.members == ["x", "z"]
    assert registry.members_of("G") == ["x", "z"]
    assert registry.is_member("G", "z")
    assert not registry.is_member("G", "y")


def test_group_duplicate_name_leaves_registry_unchanged() -> None:
    registry = GroupRegistry()
    registry.create("G", ["x"], None, online=["x"])

    with pytest.raises(DuplicateGroup):
        registry.create("G", ["y"], "y", online=["y"])

    assert registry.members_of("G") == ["x"]
    assert len(registry) == 1


@pytest.mark.parametrize(
    ("name", "members"),
    [("", ["x"]), ("G", [])],
)
def test_group_invalid_request(name: str, members: list[str]) -> None:
    registry = GroupRegistry()

    with pytest.raises(InvalidRequest):
        registry.create(name, members, "x", online=["x"])


def test_group_no_valid_members() -> None:
    registry = GroupRegistry()

    with pytest.raises(NoValidMembers):
        registry.create("G", ["ghost"], None, online=["x"])

    assert "G" not in registry


def test_groups_containing_and_clear() -> None:
    registry = GroupRegistry()
    registry.create("one", ["a", "b"], "a", online=["a", "b"])
    registry.create("two", ["b"], "c", online=["b", "c"])

    assert registry.groups_containing("b") == ["one", "two"]
    assert registry.groups_containing("a") == ["one"]
    assert registry.groups_containing("nobody") == []
    assert registry.members_of("missing") is None

    registry.clear()

    assert registry.names() == []
    assert registry.groups_containing("b") == []
