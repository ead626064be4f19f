"""Message listener that answers repository links with previews.

Code links are previewed first, then commit links. Messages that are valid
prefix commands and messages from bots are ignored.
"""

import aiohttp
import discord
from discord.ext import commands

from shiggybot.configuration.app_configuration import app_config
from shiggybot.previews.code_preview import build_code_previews, find_code_links
from shiggybot.previews.commit_preview import build_commit_previews, find_commit_links
from shiggybot.previews.rate_limiter import RateLimiter
from shiggybot.util.logger import get_logger

logger = get_logger("preview_listener_cog")

MAX_EMBEDS_PER_MESSAGE = 10


class PreviewListenerCog(commands.Cog):
    """Cog that posts code and commit previews for links in chat.

    Parameters
    ----------
    discord_bot_instance:
        Bot used to recognise prefix commands.
    rate_limiter:
        Budget for raw file downloads; defaults to the configured hourly limit.
    """

    def __init__(self, discord_bot_instance, rate_limiter: RateLimiter | None = None):
        self.discord_bot_instance = discord_bot_instance
        self.rate_limiter = rate_limiter or RateLimiter(limit=app_config.code_fetch_limit_per_hour)
        self._session: aiohttp.ClientSession | None = None
        logger.info("Preview listener cog loaded")

    def get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def cog_unload(self) -> None:
        if self._session is not None and not self._session.closed:
            self.discord_bot_instance.loop.create_task(self._session.close())

    async def collect_previews(self, content: str) -> list[discord.Embed]:
        code_links = find_code_links(content, limit=app_config.max_code_previews)
        commit_links = find_commit_links(content, limit=app_config.max_commit_previews)
        if not code_links and not commit_links:
            return []

        session = self.get_session()
        embeds = []
        if code_links:
            embeds.extend(await build_code_previews(session, code_links, self.rate_limiter))
        if commit_links:
            embeds.extend(await build_commit_previews(session, commit_links, app_config.github_token))
        return embeds[:MAX_EMBEDS_PER_MESSAGE]

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or not message.content:
            return
        if "http" not in message.content:
            return

        ctx = await self.discord_bot_instance.get_context(message)
        if ctx.valid:
            return

        embeds = await self.collect_previews(message.content)
        if not embeds:
            return

        try:
            await message.edit(suppress=True)
        except discord.HTTPException:
            # requires Manage Messages
            logger.debug("[PREVIEWS] Could not suppress embeds on message %s", message.id)

        try:
            await message.reply(embeds=embeds, mention_author=False)
        except discord.HTTPException as exc:
            logger.warning("[PREVIEWS] Reply failed (%s); sending to channel", exc)
            try:
                await message.channel.send(embeds=embeds)
            except discord.HTTPException as send_exc:
                logger.error("[PREVIEWS] Failed to send previews for message %s: %s", message.id, send_exc)


def setup(discord_bot_instance):
    """Register the PreviewListenerCog with the bot."""
    discord_bot_instance.add_cog(PreviewListenerCog(discord_bot_instance))
