"""Tests for the events listener cog."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from discord.ext import commands

from shiggybot.bot.cogs import events_listener
from shiggybot.bot.cogs.events_listener import GENERIC_ERROR_MESSAGE, EventsListenerCog, assign_welcome_role


class FakeRole:
    def __init__(self, role_id, position, name="Member"):
        self.id = role_id
        self.position = position
        self.name = name

    def __ge__(self, other):
        return self.position >= other.position


def make_member(role=None, *, manage_roles=True, cached=True, roles=()):
    me = SimpleNamespace(guild_permissions=SimpleNamespace(manage_roles=manage_roles), top_role=FakeRole(1, 50))
    guild = MagicMock()
    guild.id = 10
    guild.me = me
    guild.get_role.return_value = role if cached else None
    guild.fetch_roles = AsyncMock(return_value=[role] if role else [])
    member = MagicMock()
    member.guild = guild
    member.id = 20
    member.roles = list(roles)
    member.add_roles = AsyncMock()
    return member


class TestAssignWelcomeRole:
    @pytest.mark.asyncio
    async def test_gives_cached_role(self):
        role = FakeRole(5, 10)
        member = make_member(role)

        assert await assign_welcome_role(member, 5) is True
        member.add_roles.assert_awaited_once_with(role, reason="Auto-role on join")

    @pytest.mark.asyncio
    async def test_fetches_uncached_role(self):
        role = FakeRole(5, 10)
        member = make_member(role, cached=False)

        assert await assign_welcome_role(member, 5) is True
        member.guild.fetch_roles.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_without_role_id(self):
        member = make_member(FakeRole(5, 10))

        assert await assign_welcome_role(member, None) is False
        member.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_permission(self):
        member = make_member(FakeRole(5, 10), manage_roles=False)

        assert await assign_welcome_role(member, 5) is False

    @pytest.mark.asyncio
    async def test_unknown_role(self):
        member = make_member(None, cached=False)

        assert await assign_welcome_role(member, 5) is False

    @pytest.mark.asyncio
    async def test_role_above_bot(self):
        member = make_member(FakeRole(5, 60))

        assert await assign_welcome_role(member, 5) is False
        member.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_has_role(self):
        role = FakeRole(5, 10)
        member = make_member(role, roles=[role])

        assert await assign_welcome_role(member, 5) is False

    @pytest.mark.asyncio
    async def test_add_roles_failure_is_swallowed(self):
        response = MagicMock(status=403, reason="Forbidden")
        member = make_member(FakeRole(5, 10))
        member.add_roles.side_effect = discord.Forbidden(response, "Missing Access")

        assert await assign_welcome_role(member, 5) is False


class TestCommandErrors:
    @pytest.fixture()
    def ctx(self):
        context = MagicMock()
        context.reply = AsyncMock()
        context.command = SimpleNamespace(qualified_name="ban")
        return context

    @pytest.mark.asyncio
    async def test_command_not_found_is_silent(self, ctx):
        cog = EventsListenerCog(MagicMock())

        await cog.on_command_error(ctx, commands.CommandNotFound("nope"))

        ctx.reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_permissions(self, ctx):
        cog = EventsListenerCog(MagicMock())

        await cog.on_command_error(ctx, commands.MissingPermissions(["ban_members"]))

        embed = ctx.reply.await_args.kwargs["embed"]
        assert "permission" in embed.description

    @pytest.mark.asyncio
    async def test_bad_argument_is_echoed(self, ctx):
        cog = EventsListenerCog(MagicMock())

        await cog.on_command_error(ctx, commands.BadArgument("That is not a number."))

        assert ctx.reply.await_args.kwargs["embed"].description == "❌ That is not a number."

    @pytest.mark.asyncio
    async def test_unexpected_error_gets_generic_message(self, ctx):
        cog = EventsListenerCog(MagicMock())

        await cog.on_command_error(ctx, commands.CommandError("boom"))

        assert GENERIC_ERROR_MESSAGE in ctx.reply.await_args.kwargs["embed"].description

    @pytest.mark.asyncio
    async def test_application_command_error(self):
        cog = EventsListenerCog(MagicMock())
        application_context = MagicMock()
        application_context.respond = AsyncMock()

        await cog.on_application_command_error(application_context, RuntimeError("boom"))

        application_context.respond.assert_awaited_once_with(GENERIC_ERROR_MESSAGE, ephemeral=True)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_on_member_join_skips_bots(self, monkeypatch):
        assign = AsyncMock()
        monkeypatch.setattr(events_listener, "assign_welcome_role", assign)
        cog = EventsListenerCog(MagicMock())

        await cog.on_member_join(SimpleNamespace(bot=True))
        human = SimpleNamespace(bot=False)
        await cog.on_member_join(human)

        assign.assert_awaited_once()
        assert assign.await_args.args[0] is human

    @pytest.mark.asyncio
    async def test_on_ready_sets_presence(self):
        bot = MagicMock()
        bot.change_presence = AsyncMock()
        cog = EventsListenerCog(bot)

        await cog.on_ready()

        kwargs = bot.change_presence.await_args.kwargs
        assert kwargs["status"] is discord.Status.idle
        assert kwargs["activity"].name == "ShiggyCord users"


def test_setup_registers_cog():
    bot = MagicMock()

    events_listener.setup(bot)

    assert isinstance(bot.add_cog.call_args.args[0], EventsListenerCog)
