"""
embeds.py
=========

Embed builders shared by the ShiggyBot cogs.

Generic builders (:func:`build_embed`, :func:`error_embed`, ...) give every
response the same look; the plugin builders render catalog search results.
"""

from __future__ import annotations

import datetime
from typing import Sequence

import discord

from shiggybot.datatypes.plugin_datatypes import PluginRecord, PluginStatus, ScoredMatch
from shiggybot.util.discord_utils import format_duration, truncate

BOT_TITLE = "ShiggyBot"
DEFAULT_COLOR = 0xFFCC00
SUCCESS_COLOR = 0x57F287
ERROR_COLOR = 0xED4245
NOTE_COLOR = 0xFFEAC4

STATUS_COLORS = {
    PluginStatus.WORKING: 0x00FF00,
    PluginStatus.WARNING: 0xFFFF00,
    PluginStatus.BROKEN: 0xFF0000,
    PluginStatus.UNKNOWN: DEFAULT_COLOR,
}

STATUS_EMOJIS = {
    PluginStatus.WORKING: "🟢",
    PluginStatus.WARNING: "🟡",
    PluginStatus.BROKEN: "🔴",
    PluginStatus.UNKNOWN: "⚪",
}

MAX_LISTED_PLUGINS = 5
SINGLE_DESCRIPTION_LIMIT = 200
LISTED_DESCRIPTION_LIMIT = 100


def build_embed(description: str, *, title: str = BOT_TITLE, color: int = DEFAULT_COLOR) -> discord.Embed:
    """Create a timestamped embed with the bot's default styling."""
    return discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )


def error_embed(description: str) -> discord.Embed:
    return build_embed(f"❌ {description}", color=ERROR_COLOR)


def success_embed(description: str) -> discord.Embed:
    return build_embed(f"✅ {description}", color=SUCCESS_COLOR)


def usage_embed(prefix: str, command_name: str, usage: str, example: str | None = None) -> discord.Embed:
    """Explain how to call a prefix command."""
    description = f"**Usage:** `{prefix}{command_name} {usage}`"
    if example:
        description += f"\n**Example:** `{prefix}{command_name} {example}`"
    return build_embed(description, title=f"{BOT_TITLE} • {command_name}")


def moderation_embed(
    action: str,
    target: discord.abc.User,
    moderator: discord.abc.User,
    reason: str,
    duration_seconds: int | None = None,
) -> discord.Embed:
    """Summarize a completed moderation action for the channel."""
    embed = success_embed(f"**{target}** has been {action}.")
    embed.add_field(name="Moderator", value=moderator.mention, inline=True)
    if duration_seconds is not None:
        embed.add_field(name="Duration", value=format_duration(duration_seconds), inline=True)
    embed.add_field(name="Reason", value=truncate(reason, 1024), inline=False)
    return embed


# --- Plugin catalog ---

def status_color(status: PluginStatus) -> int:
    return STATUS_COLORS.get(status, DEFAULT_COLOR)


def status_emoji(status: PluginStatus) -> str:
    return STATUS_EMOJIS.get(status, STATUS_EMOJIS[PluginStatus.UNKNOWN])


def format_authors(record: PluginRecord) -> str:
    return ", ".join(record.authors) or "N/A"


def plugin_detail_embed(record: PluginRecord) -> discord.Embed:
    """Describe a single plugin."""
    embed = build_embed(
        truncate(record.description, SINGLE_DESCRIPTION_LIMIT),
        title=f"Plugin: {record.name}",
        color=status_color(record.status),
    )
    embed.add_field(name="Authors", value=format_authors(record), inline=True)
    embed.add_field(name="Status", value=f"{status_emoji(record.status)} {record.status}", inline=True)
    if record.warning_message:
        embed.add_field(name="⚠️ Warning", value=truncate(record.warning_message, 1024), inline=False)
    return embed


def plugin_results_embed(query: str, matches: Sequence[ScoredMatch]) -> discord.Embed:
    """List the best matches for ``query``, at most :data:`MAX_LISTED_PLUGINS` of them."""
    plural = "" if len(matches) == 1 else "s"
    embed = build_embed(
        f"Found {len(matches)} plugin{plural} matching **{query}**",
        title="Plugin Search Results",
    )
    for index, match in enumerate(matches[:MAX_LISTED_PLUGINS], start=1):
        record = match.record
        embed.add_field(
            name=f"{index}. {status_emoji(record.status)} {record.name}",
            value=f"*{truncate(record.description, LISTED_DESCRIPTION_LIMIT)}*\n**Authors:** {format_authors(record)}",
            inline=False,
        )
    if len(matches) > MAX_LISTED_PLUGINS:
        embed.set_footer(
            text=f"Showing top {MAX_LISTED_PLUGINS} of {len(matches)} results. Refine your search for better matches."
        )
    return embed


def no_plugins_embed(query: str) -> discord.Embed:
    return build_embed(
        f"No plugins found matching **{query}**.\n\nTry a different search term or check your spelling."
    )


def install_link_message(record: PluginRecord) -> str:
    return (
        f"Here's the install link for **{record.name}**:\n```{record.install_url}```\n"
        "**Note:** If the link doesn't work directly, you might need to copy and paste it "
        "into your client's plugin installer."
    )
