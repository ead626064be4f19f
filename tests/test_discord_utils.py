"""Tests for discord_utils helpers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from shiggybot.util import discord_utils
from shiggybot.util.discord_utils import (
    bot_has_permissions,
    extract_leading_mention_id,
    fetch_member,
    find_role,
    format_duration,
    has_permissions,
    resolve_reply_author_id,
    safe_delete_message,
    safe_reply,
    truncate,
)


def http_error(exc_type=discord.HTTPException, status=500):
    response = MagicMock()
    response.status = status
    response.reason = "error"
    return exc_type(response, "failure")


class TestFormatting:
    def test_truncate_leaves_short_text(self):
        assert truncate("short", 10) == "short"

    def test_truncate_adds_suffix(self):
        assert truncate("abcdefghij", 8) == "abcde..."
        assert len(truncate("x" * 500, 200)) == 200

    def test_truncate_tiny_limit(self):
        assert truncate("abcdef", 2) == "ab"

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "0s"),
            (-5, "0s"),
            (45, "45s"),
            (600, "10m"),
            (3_660, "1h 1m"),
            (2 * 86_400 + 3 * 3_600, "2d 3h"),
            (28 * 86_400, "28d"),
        ],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestPermissions:
    def test_member_with_permission(self):
        author = MagicMock(spec=discord.Member)
        author.guild_permissions = SimpleNamespace(ban_members=True, kick_members=False)
        context = SimpleNamespace(author=author)

        assert has_permissions(context, ban_members=True) is True
        assert has_permissions(context, ban_members=True, kick_members=True) is False

    def test_non_member_author_is_refused(self):
        context = SimpleNamespace(author=MagicMock(spec=discord.User))

        assert has_permissions(context, ban_members=True) is False

    def test_bot_has_permissions(self):
        guild = SimpleNamespace(me=SimpleNamespace(guild_permissions=SimpleNamespace(manage_messages=True)))

        assert bot_has_permissions(guild, manage_messages=True) is True
        assert bot_has_permissions(guild, moderate_members=True) is False
        assert bot_has_permissions(SimpleNamespace(me=None), manage_messages=True) is False


class TestMessageInspection:
    def test_reply_author_from_resolved_reference(self):
        replied = MagicMock(spec=discord.Message)
        replied.author = SimpleNamespace(id=42)
        message = SimpleNamespace(reference=SimpleNamespace(resolved=replied, cached_message=None))

        assert resolve_reply_author_id(message) == 42

    def test_reply_author_without_reference(self):
        assert resolve_reply_author_id(SimpleNamespace(reference=None)) is None

    def test_deleted_reference_is_ignored(self):
        deleted = MagicMock(spec=discord.DeletedReferencedMessage)
        message = SimpleNamespace(reference=SimpleNamespace(resolved=deleted, cached_message=None))

        assert resolve_reply_author_id(message) is None

    def test_leading_mention_must_be_a_real_mention(self):
        message = SimpleNamespace(raw_mentions=[123456789012345678])

        assert extract_leading_mention_id(message, ["<@123456789012345678>", "spam"]) == 123456789012345678
        assert extract_leading_mention_id(message, ["<@!123456789012345678>"]) == 123456789012345678
        assert extract_leading_mention_id(message, ["<@999>"]) is None
        assert extract_leading_mention_id(message, ["123456789012345678"]) is None
        assert extract_leading_mention_id(message, []) is None


class TestLookups:
    @pytest.mark.asyncio
    async def test_fetch_member_prefers_cache(self):
        cached = object()
        guild = MagicMock()
        guild.get_member.return_value = cached
        guild.fetch_member = AsyncMock()

        assert await fetch_member(guild, 1) is cached
        guild.fetch_member.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_member_not_found(self):
        guild = MagicMock()
        guild.get_member.return_value = None
        guild.fetch_member = AsyncMock(side_effect=http_error(discord.NotFound, 404))

        assert await fetch_member(guild, 1) is None

    def test_find_role_by_id_then_name(self):
        helper = SimpleNamespace(id=10, name="Helper")
        guild = MagicMock()
        guild.get_role.side_effect = lambda role_id: helper if role_id == 10 else None
        guild.roles = [SimpleNamespace(id=11, name="Cool Role"), helper]

        assert find_role(guild, 10, None) is helper
        assert find_role(guild, 99, "cool role").id == 11
        assert find_role(guild, None, "missing") is None


class TestDelivery:
    @pytest.mark.asyncio
    async def test_safe_reply_falls_back_to_channel(self):
        sent = object()
        message = MagicMock()
        message.reply = AsyncMock(side_effect=http_error())
        message.channel.send = AsyncMock(return_value=sent)

        assert await safe_reply(message, content="hi") is sent
        message.channel.send.assert_awaited_once_with(content="hi")

    @pytest.mark.asyncio
    async def test_safe_reply_gives_up_after_dm(self):
        message = MagicMock()
        message.reply = AsyncMock(side_effect=http_error())
        message.channel.send = AsyncMock(side_effect=http_error())
        message.author.send = AsyncMock(side_effect=http_error(discord.Forbidden, 403))

        assert await safe_reply(message, content="hi") is None

    @pytest.mark.asyncio
    async def test_safe_delete_message(self):
        message = MagicMock()
        message.delete = AsyncMock()

        assert await safe_delete_message(message, delay=6) is True
        message.delete.assert_awaited_once_with(delay=6)

        message.delete = AsyncMock(side_effect=http_error(discord.NotFound, 404))
        assert await safe_delete_message(message) is False


def test_module_logger_name():
    assert discord_utils.logger.name == "discord_utils"
