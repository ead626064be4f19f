"""Event listener Cog for ShiggyBot.

Handles the bot lifecycle (``on_ready``), command error reporting for both
prefix and slash commands, and the auto-role given to new members.
Link previews live in :mod:`shiggybot.bot.cogs.preview_listener`.
"""

import discord
from discord.ext import commands

from shiggybot.configuration.app_configuration import app_config
from shiggybot.util.embeds import error_embed
from shiggybot.util.logger import get_logger

logger = get_logger("events_listener_cog")

GENERIC_ERROR_MESSAGE = "A :bug: showed up while running this command."


async def assign_welcome_role(member: discord.Member, role_id: int | None) -> bool:
    """Give ``member`` the configured welcome role.

    Returns True when the role was added. Every failure is logged and
    swallowed so a misconfigured role never breaks the join event.
    """
    if not role_id:
        return False
    guild = member.guild
    me = guild.me
    if me is None or not me.guild_permissions.manage_roles:
        logger.warning("[AUTOROLE] Missing Manage Roles permission in guild %s", guild.id)
        return False

    role = guild.get_role(role_id)
    if role is None:
        try:
            role = next((r for r in await guild.fetch_roles() if r.id == role_id), None)
        except discord.HTTPException as exc:
            logger.error("[AUTOROLE] Could not fetch roles for guild %s: %s", guild.id, exc)
            return False
    if role is None:
        logger.warning("[AUTOROLE] Role %s not found in guild %s", role_id, guild.id)
        return False

    if role >= me.top_role:
        logger.warning("[AUTOROLE] Role %s is not below my highest role in guild %s", role.name, guild.id)
        return False
    if role in member.roles:
        return False

    try:
        await member.add_roles(role, reason="Auto-role on join")
    except discord.HTTPException as exc:
        logger.error("[AUTOROLE] Failed to give %s to %s: %s", role.name, member.id, exc)
        return False

    logger.info("[AUTOROLE] Gave %s to %s in guild %s", role.name, member, guild.id)
    return True


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle, error and member-join handlers."""

    def __init__(self, discord_bot_instance):
        self.bot = discord_bot_instance
        self.discord_bot_instance = discord_bot_instance
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        if self.bot.user:
            await self._update_presence()
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")
        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

    async def _update_presence(self) -> None:
        """Apply the status and activity text from the configuration."""
        status = discord.Status(app_config.presence_status)
        activity_name = app_config.presence_activity
        activity = discord.Activity(type=discord.ActivityType.watching, name=activity_name) if activity_name else None
        await self.bot.change_presence(status=status, activity=activity)

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member):
        if member.bot:
            return
        await assign_welcome_role(member, app_config.welcome_role_id)

    @commands.Cog.listener(name="on_command_error")
    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        """Report prefix command failures to the invoker."""
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, commands.MissingPermissions):
            await ctx.reply(embed=error_embed("You do not have permission to use this command."), mention_author=False)
            return
        if isinstance(error, (commands.BadArgument, commands.MissingRequiredArgument)):
            await ctx.reply(embed=error_embed(str(error)), mention_author=False)
            return
        if isinstance(error, commands.NoPrivateMessage):
            await ctx.reply(embed=error_embed("This command can only be used in a server."), mention_author=False)
            return

        command_name = getattr(ctx.command, "qualified_name", "<unknown>")
        original = getattr(error, "original", error)
        logger.error(
            f"Error in prefix command '{command_name}': {original}",
            exc_info=(type(original), original, original.__traceback__),
        )
        try:
            await ctx.reply(embed=error_embed(GENERIC_ERROR_MESSAGE), mention_author=False)
        except discord.HTTPException:
            logger.error("Failed to send error response to user.")

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Handle errors from application commands with logging and user feedback."""
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, "name", "<unknown>")
        logger.error(f"Error in command '{command_name}': {error}", exc_info=True)

        try:
            await application_context.respond(GENERIC_ERROR_MESSAGE, ephemeral=True)
        except discord.InteractionResponded:
            await application_context.followup.send(GENERIC_ERROR_MESSAGE, ephemeral=True)


def setup(discord_bot_instance):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance))
