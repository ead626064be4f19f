"""Tests for moderation targeting rules."""

from types import SimpleNamespace

import pytest

from shiggybot.moderation.moderation_policy import check_role_assignable, check_target_policy

OWNER_ID = 1


class FakeRole:
    def __init__(self, position, name="Role", managed=False, default=False):
        self.position = position
        self.name = name
        self.managed = managed
        self._default = default

    def is_default(self):
        return self._default

    def __ge__(self, other):
        return self.position >= other.position


def member(member_id, position):
    return SimpleNamespace(id=member_id, top_role=FakeRole(position))


@pytest.fixture()
def guild():
    return SimpleNamespace(owner_id=OWNER_ID)


@pytest.fixture()
def bot_member():
    return member(99, 50)


class TestTargetPolicy:
    def test_allows_lower_target(self, guild, bot_member):
        assert check_target_policy(guild, member(2, 20), member(3, 10), bot_member, "ban") is None

    def test_refuses_self(self, guild, bot_member):
        moderator = member(2, 20)
        assert check_target_policy(guild, moderator, moderator, bot_member, "kick") == "You cannot kick yourself."

    def test_refuses_bot(self, guild, bot_member):
        assert "myself" in check_target_policy(guild, member(2, 60), bot_member, bot_member, "ban")

    def test_refuses_owner(self, guild, bot_member):
        assert "server owner" in check_target_policy(guild, member(2, 60), member(OWNER_ID, 1), bot_member, "timeout")

    def test_refuses_equal_role(self, guild, bot_member):
        error = check_target_policy(guild, member(2, 20), member(3, 20), bot_member, "ban")
        assert error == "You cannot ban someone with an equal or higher role."

    def test_owner_bypasses_own_hierarchy_but_not_bots(self, guild, bot_member):
        owner = member(OWNER_ID, 10)
        assert check_target_policy(guild, owner, member(3, 30), bot_member, "kick") is None
        assert "than mine" in check_target_policy(guild, owner, member(3, 70), bot_member, "kick")


class TestRoleAssignable:
    def test_allows_role_below_both(self, guild, bot_member):
        assert check_role_assignable(guild, member(2, 20), FakeRole(5, "Helper"), bot_member) is None

    def test_refuses_everyone(self, guild, bot_member):
        assert "@everyone" in check_role_assignable(guild, member(2, 20), FakeRole(0, default=True), bot_member)

    def test_refuses_managed(self, guild, bot_member):
        error = check_role_assignable(guild, member(2, 20), FakeRole(5, "Booster", managed=True), bot_member)
        assert "**Booster**" in error

    def test_refuses_role_at_moderator_level(self, guild, bot_member):
        error = check_role_assignable(guild, member(2, 20), FakeRole(20, "Mod"), bot_member)
        assert error.startswith("You cannot manage")

    def test_refuses_role_above_bot(self, guild, bot_member):
        error = check_role_assignable(guild, member(OWNER_ID, 5), FakeRole(60, "Admin"), bot_member)
        assert error.startswith("I cannot manage")
