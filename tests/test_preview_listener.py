"""Tests for the link preview listener."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from shiggybot.bot.cogs import preview_listener
from shiggybot.bot.cogs.preview_listener import MAX_EMBEDS_PER_MESSAGE, PreviewListenerCog
from shiggybot.previews.rate_limiter import RateLimiter

CODE_URL = "https://github.com/o/r/blob/main/a.py#L1-L2"
COMMIT_URL = "https://github.com/o/r/commit/abcdef1"


def make_cog(valid_command=False):
    bot = MagicMock()
    bot.get_context = AsyncMock(return_value=MagicMock(valid=valid_command))
    cog = PreviewListenerCog(bot, rate_limiter=RateLimiter())
    cog.get_session = MagicMock(return_value=object())
    return cog


def make_message(content, bot_author=False):
    message = MagicMock()
    message.author.bot = bot_author
    message.content = content
    message.edit = AsyncMock()
    message.reply = AsyncMock()
    message.channel.send = AsyncMock()
    return message


@pytest.fixture()
def fake_builders(monkeypatch):
    code = AsyncMock(side_effect=lambda session, links, limiter: [discord.Embed(title="code") for _ in links])
    commit = AsyncMock(side_effect=lambda session, links, token: [discord.Embed(title="commit") for _ in links])
    monkeypatch.setattr(preview_listener, "build_code_previews", code)
    monkeypatch.setattr(preview_listener, "build_commit_previews", commit)
    return code, commit


class TestCollectPreviews:
    @pytest.mark.asyncio
    async def test_code_before_commits(self, fake_builders):
        cog = make_cog()

        embeds = await cog.collect_previews(f"{COMMIT_URL} and {CODE_URL}")

        assert [embed.title for embed in embeds] == ["code", "commit"]

    @pytest.mark.asyncio
    async def test_no_links_no_session(self, fake_builders):
        cog = make_cog()

        assert await cog.collect_previews("https://example.com nothing to see") == []
        cog.get_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_embed_cap(self, monkeypatch):
        monkeypatch.setattr(preview_listener, "build_code_previews",
                            AsyncMock(return_value=[discord.Embed() for _ in range(15)]))
        cog = make_cog()

        assert len(await cog.collect_previews(CODE_URL)) == MAX_EMBEDS_PER_MESSAGE


class TestOnMessage:
    @pytest.mark.asyncio
    async def test_replies_and_suppresses_original_embeds(self, fake_builders):
        cog = make_cog()
        message = make_message(f"look {CODE_URL}")

        await cog.on_message(message)

        message.edit.assert_awaited_once_with(suppress=True)
        kwargs = message.reply.await_args.kwargs
        assert kwargs["mention_author"] is False
        assert [embed.title for embed in kwargs["embeds"]] == ["code"]

    @pytest.mark.asyncio
    async def test_ignores_bots_commands_and_plain_text(self, fake_builders):
        code, commit = fake_builders
        command_cog = make_cog(valid_command=True)

        await make_cog().on_message(make_message(CODE_URL, bot_author=True))
        await make_cog().on_message(make_message("no links here"))
        await command_cog.on_message(make_message(f"Snote {CODE_URL}"))

        code.assert_not_awaited()
        commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_to_channel_send(self, fake_builders):
        cog = make_cog()
        message = make_message(COMMIT_URL)
        message.edit.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Permissions")
        message.reply.side_effect = discord.HTTPException(MagicMock(status=400, reason="Bad Request"), "Unknown message")

        await cog.on_message(message)

        assert [embed.title for embed in message.channel.send.await_args.kwargs["embeds"]] == ["commit"]
