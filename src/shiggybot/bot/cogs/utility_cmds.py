"""General-purpose commands: ping, help, about, google and sticky notes."""

import platform
import time
from urllib.parse import quote

import discord
from discord.ext import commands

from shiggybot.configuration.app_configuration import StickyNote, app_config
from shiggybot.util.discord_utils import format_duration, safe_reply, truncate
from shiggybot.util.embeds import NOTE_COLOR, build_embed, error_embed
from shiggybot.util.logger import get_logger

logger = get_logger("utility_cog")

GOOGLE_SEARCH_URL = "https://www.google.com/search?q="


def google_search_url(query: str) -> str:
    return GOOGLE_SEARCH_URL + quote(query, safe="")


def note_topics(autocomplete_context: discord.AutocompleteContext) -> list[str]:
    return sorted(app_config.sticky_notes)


def note_embed(note: StickyNote) -> discord.Embed:
    return build_embed(truncate(note.content, 4096), title=note.title, color=NOTE_COLOR)


def describe_command(prefix: str, command: commands.Command) -> str:
    """One help line: invocation, aliases and description."""
    line = f"`{prefix}{command.name}"
    if command.usage:
        line += f" {command.usage}"
    line += "`"
    if command.aliases:
        line += f" (aliases: {', '.join(command.aliases)})"
    if command.help:
        line += f"\n{command.help}"
    return line


class UtilityCommandsCog(commands.Cog):
    """Cog containing informational commands available to everyone."""

    def __init__(self, discord_bot_instance):
        self.discord_bot_instance = discord_bot_instance
        self.started_at = time.monotonic()
        logger.info("Utility cog loaded")

    @commands.command(name="ping", help="Check the bot's latency.")
    async def ping(self, ctx: commands.Context) -> None:
        sent = await ctx.reply("Pinging...", mention_author=False)
        round_trip_ms = (sent.created_at - ctx.message.created_at).total_seconds() * 1000
        api_ms = self.discord_bot_instance.latency * 1000
        await sent.edit(content=f"Pong! Latency: {round_trip_ms:.0f}ms. API Latency: {api_ms:.0f}ms")

    @commands.command(name="help", aliases=["commands"], help="List commands or show one command.", usage="[command]")
    async def show_help(self, ctx: commands.Context, command_name: str = "") -> None:
        prefix = app_config.prefix
        if command_name:
            command = self.discord_bot_instance.get_command(command_name.lower())
            if command is None or command.hidden:
                await ctx.reply(embed=error_embed(f"No command named `{command_name}`."), mention_author=False)
                return
            await ctx.reply(embed=build_embed(describe_command(prefix, command), title=f"Help • {command.name}"), mention_author=False)
            return

        lines = [
            describe_command(prefix, command)
            for command in sorted(self.discord_bot_instance.commands, key=lambda c: c.name)
            if not command.hidden
        ]
        embed = build_embed(truncate("\n\n".join(lines), 4096), title="ShiggyBot Commands")
        embed.set_footer(text=f"Prefix: {prefix} (case-insensitive) • Slash commands are also available")
        await ctx.reply(embed=embed, mention_author=False)

    @commands.command(name="about", help="Show information about the bot.")
    async def about(self, ctx: commands.Context) -> None:
        uptime = format_duration(int(time.monotonic() - self.started_at))
        embed = build_embed("A helper bot for the ShiggyCord community.", title="About ShiggyBot")
        embed.add_field(name="Prefix", value=f"`{app_config.prefix}`", inline=True)
        embed.add_field(name="Uptime", value=uptime, inline=True)
        embed.add_field(name="Servers", value=str(len(self.discord_bot_instance.guilds)), inline=True)
        embed.add_field(name="Python", value=platform.python_version(), inline=True)
        embed.add_field(name="Py-cord", value=discord.__version__, inline=True)
        await ctx.reply(embed=embed, mention_author=False)

    @commands.command(name="google", aliases=["g", "search"], help="Get a Google search link.", usage="<query>")
    async def google(self, ctx: commands.Context, *, query: str = "") -> None:
        if not query.strip():
            await ctx.reply("Please provide something to search for.", mention_author=False)
            return
        await ctx.reply(
            f'Here\'s what I found on Google for "{query}":\n{google_search_url(query)}',
            mention_author=False,
        )

    @commands.command(name="note", help="Post a sticky note about a common question.", usage="[topic]")
    async def note(self, ctx: commands.Context, topic: str = "") -> None:
        notes = app_config.sticky_notes
        note = notes.get(topic.lower()) if topic else None
        if note is None:
            available = ", ".join(f"`{name}`" for name in sorted(notes)) or "none configured"
            prefix_text = f"Unknown note `{topic}`.\n" if topic else ""
            await ctx.reply(embed=build_embed(f"{prefix_text}Available notes: {available}"), mention_author=False)
            return

        # Answer the question being replied to, when there is one.
        reference = ctx.message.reference
        target = reference.resolved if reference and isinstance(reference.resolved, discord.Message) else ctx.message
        await safe_reply(target, embed=note_embed(note), mention_author=target is not ctx.message)

    @commands.slash_command(name="ping", description="Check the bot's latency.")
    async def ping_slash(self, ctx: discord.ApplicationContext) -> None:
        await ctx.respond(f"Pong! API Latency: {self.discord_bot_instance.latency * 1000:.0f}ms", ephemeral=True)

    @commands.slash_command(name="note", description="Post a sticky note about a common question.")
    async def note_slash(
        self,
        ctx: discord.ApplicationContext,
        topic: discord.Option(str, "Note topic.", autocomplete=discord.utils.basic_autocomplete(note_topics)),  # type: ignore
    ) -> None:
        note = app_config.sticky_notes.get(topic.lower())
        if note is None:
            await ctx.respond(f"Unknown note `{topic}`.", ephemeral=True)
            return
        await ctx.respond(embed=note_embed(note))


def setup(discord_bot_instance):
    """Register the UtilityCommandsCog with the bot."""
    discord_bot_instance.add_cog(UtilityCommandsCog(discord_bot_instance))
