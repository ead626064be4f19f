"""Plugin lookup cog.

Users search the community plugin catalog with ``Splugin <name>`` (aliases
``plugins``, ``plg``, ``plug``), ``/plugin`` or by writing ``[[name]]`` as a
whole message. Results come with install-link buttons whose clicks are
answered here, privately, from the ``on_interaction`` listener.
"""

import re

import discord
from discord import Option
from discord.ext import commands

from shiggybot.configuration.app_configuration import app_config
from shiggybot.datatypes.plugin_datatypes import ScoredMatch
from shiggybot.plugins.plugin_search import find_plugin_by_hash, search_plugins
from shiggybot.plugins.plugin_service import PluginCatalog
from shiggybot.ui.plugin_view import PluginLinksView, parse_install_button_id
from shiggybot.util.embeds import (
    ERROR_COLOR,
    MAX_LISTED_PLUGINS,
    build_embed,
    install_link_message,
    no_plugins_embed,
    plugin_detail_embed,
    plugin_results_embed,
)
from shiggybot.util.logger import get_logger

logger = get_logger("plugin_cog")

INLINE_QUERY_PATTERN = re.compile(r"^\[\[(.+?)\]\]$", re.DOTALL)
MAX_QUERY_LENGTH = 100


def render_search_results(query: str, matches: list[ScoredMatch]) -> tuple[discord.Embed, PluginLinksView | None]:
    """Pick the detail or list layout for ``matches`` and build its buttons.

    Must be called from a running event loop, since views bind to it.
    """
    if not matches:
        return no_plugins_embed(query), None
    if len(matches) == 1:
        record = matches[0].record
        embed = plugin_detail_embed(record)
        view = PluginLinksView([record])
    else:
        embed = plugin_results_embed(query, matches)
        view = PluginLinksView([match.record for match in matches[:MAX_LISTED_PLUGINS]], short_labels=True)
    return embed, view if view.has_buttons else None


class PluginCommandsCog(commands.Cog):
    """Cog containing the plugin search commands and install-button handler."""

    def __init__(self, discord_bot_instance, catalog: PluginCatalog | None = None):
        self.discord_bot_instance = discord_bot_instance
        self.catalog = catalog or PluginCatalog(app_config.plugin_list_url)
        logger.info("Plugin cog loaded")

    async def search(self, query: str) -> list[ScoredMatch] | None:
        """Search the catalog; None when the catalog could not be loaded at all."""
        records = await self.catalog.get()
        if not records:
            return None
        return search_plugins(
            records,
            query,
            threshold=app_config.plugin_score_threshold,
            weights=app_config.plugin_search_weights,
        )

    async def build_response(self, query: str) -> tuple[discord.Embed, PluginLinksView | None]:
        query = query.strip()[:MAX_QUERY_LENGTH]
        matches = await self.search(query)
        if matches is None:
            return build_embed("❌ Failed to fetch plugin data. Please try again later.", color=ERROR_COLOR), None
        logger.debug("[PLUGIN SEARCH] %r matched %d plugins", query, len(matches))
        return render_search_results(query, matches)

    async def reply_with_results(self, message: discord.Message, query: str) -> None:
        async with message.channel.typing():
            embed, view = await self.build_response(query)
        kwargs = {"embed": embed, "mention_author": False}
        if view is not None:
            kwargs["view"] = view
        await message.reply(**kwargs)

    @commands.command(
        name="plugin",
        aliases=["plugins", "plg", "plug"],
        help="Search the plugin list.",
        usage="<plugin name>",
    )
    async def plugin_prefix(self, ctx: commands.Context, *, query: str = "") -> None:
        if not query.strip():
            prefix = ctx.prefix or app_config.prefix
            await ctx.reply(
                embed=build_embed(
                    "Please provide a plugin name to search for.\n"
                    f"**Usage:** `{prefix}plug <plugin name>`\n**Example:** `{prefix}plug petPet`"
                ),
                mention_author=False,
            )
            return
        await self.reply_with_results(ctx.message, query)

    @commands.slash_command(name="plugin", description="Search the plugin list.")
    async def plugin(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Plugin name to search for.", required=True, max_length=MAX_QUERY_LENGTH),  # type: ignore
    ) -> None:
        await ctx.defer()
        embed, view = await self.build_response(name)
        if view is not None:
            await ctx.respond(embed=embed, view=view)
        else:
            await ctx.respond(embed=embed)

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        """Answer ``[[plugin name]]`` messages."""
        if message.author.bot or not message.content:
            return
        match = INLINE_QUERY_PATTERN.match(message.content.strip())
        if not match or not match.group(1).strip():
            return
        try:
            await self.reply_with_results(message, match.group(1))
        except discord.HTTPException as exc:
            logger.error("[PLUGIN SEARCH] Failed to answer inline search: %s", exc)

    @commands.Cog.listener(name="on_interaction")
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        """Send the install link for a clicked ``plg_<hash>`` button, ephemerally."""
        if interaction.type is not discord.InteractionType.component:
            return
        plugin_key = parse_install_button_id((interaction.data or {}).get("custom_id"))
        if plugin_key is None:
            return

        await interaction.response.defer(ephemeral=True)
        record = find_plugin_by_hash(await self.catalog.get(), plugin_key)
        if record is None or not record.install_url:
            await interaction.followup.send("❌ Could not find the plugin or its install link.", ephemeral=True)
            return
        logger.debug("[PLUGIN SEARCH] Sent install link for %s to %s", record.name, interaction.user)
        await interaction.followup.send(install_link_message(record), ephemeral=True)


def setup(discord_bot_instance):
    """Register the PluginCommandsCog with the bot."""
    discord_bot_instance.add_cog(PluginCommandsCog(discord_bot_instance))
