"""
Moderation cog: commands for taking disciplinary actions on server members.

Prefix commands (``Sban``, ``Skick``, ``Stimeout``, ``Spurge``, ``Saddrole``,
``Sremoverole``) accept their arguments in any of the shapes moderators
actually type: a mention, a raw user ID, or a reply to the offending
message, with the duration/count token anywhere in the text. Parsing is
delegated to :func:`shiggybot.moderation.command_parsing.resolve_command_args`.

Slash equivalents (``/ban``, ``/kick``, ``/timeout``, ``/purge``) use typed
options and share the same execution helpers.

Every command checks, in order: guild context, invoker permission, bot
permission, argument resolution, member lookup, targeting policy. Failures
are answered with an error or usage embed; Discord API errors are logged.
"""

import datetime

import discord
from discord import Option
from discord.ext import commands

from shiggybot.datatypes.command_datatypes import (
    BAN_DELETE_WINDOW,
    PURGE_COUNT,
    ROLE_REFERENCE,
    TIMEOUT_DURATION,
    ParsedCommandArgs,
    ResolveError,
    TokenGrammar,
)
from shiggybot.moderation.command_parsing import (
    DEFAULT_REASON,
    find_user_reference,
    match_grammar_token,
    resolve_command_args,
    split_arguments,
)
from shiggybot.moderation.moderation_policy import check_role_assignable, check_target_policy
from shiggybot.util.discord_utils import (
    bot_has_permissions,
    extract_leading_mention_id,
    fetch_member,
    find_role,
    format_duration,
    has_permissions,
    resolve_reply_author_id,
    safe_delete_message,
)
from shiggybot.util.embeds import error_embed, moderation_embed, success_embed, usage_embed
from shiggybot.util.logger import get_logger

logger = get_logger("moderation_cog")

PURGE_CONFIRMATION_SECONDS = 6
BULK_DELETE_MAX_AGE = datetime.timedelta(days=14)

COMMAND_USAGE = {
    "ban": ("<@user|user ID> [delete window, e.g. 1d] [reason]", "@user 1d spamming links"),
    "kick": ("<@user|user ID> [reason]", "@user being rude"),
    "timeout": ("<@user|user ID> <duration, e.g. 10m> [reason]", "@user 10m calm down"),
    "purge": ("<count 1-100> [@user|user ID]", "20 @user"),
    "addrole": ("<@user|user ID> <@role|role ID|role name>", "@user Helper"),
    "removerole": ("<@user|user ID> <@role|role ID|role name>", "@user Helper"),
}

RESOLVE_ERROR_MESSAGES = {
    ResolveError.NO_TARGET: "Please specify a user: mention them, give their ID, or reply to their message.",
    ResolveError.NO_DURATION_TOKEN: "Please provide a duration such as `30s`, `10m`, `2h` or `7d`.",
    ResolveError.NO_COUNT_TOKEN: "Please provide how many messages to delete (1-100).",
}


class ModerationActionCog(commands.Cog):
    """Cog containing the moderation commands.

    Parameters
    ----------
    discord_bot_instance:
        Active bot; its user ID keeps replies to the bot from being treated
        as a target.
    """

    def __init__(self, discord_bot_instance):
        self.discord_bot_instance = discord_bot_instance
        logger.info("Moderation cog loaded")

    # --------------------------
    # Shared helpers
    # --------------------------
    def _bot_user_id(self) -> int | None:
        user = getattr(self.discord_bot_instance, "user", None)
        return user.id if user else None

    async def _reject(self, ctx: commands.Context, message: str) -> None:
        await ctx.reply(embed=error_embed(message), mention_author=False)

    async def check_prefix_preconditions(
        self,
        ctx: commands.Context,
        permission_name: str,
    ) -> bool:
        """Verify guild context and that both invoker and bot hold ``permission_name``."""
        if ctx.guild is None:
            await self._reject(ctx, "This command can only be used in a server.")
            return False
        if not has_permissions(ctx, **{permission_name: True}):
            await self._reject(ctx, "You do not have permission to use this command.")
            return False
        if not bot_has_permissions(ctx.guild, **{permission_name: True}):
            pretty = permission_name.replace("_", " ").title()
            await self._reject(ctx, f"I need the **{pretty}** permission to do that.")
            return False
        return True

    async def resolve_prefix_args(
        self,
        ctx: commands.Context,
        command_name: str,
        raw_args: str,
        grammar: TokenGrammar | None,
        *,
        default_reason: str = DEFAULT_REASON,
        require_target: bool = True,
        use_reply: bool = True,
    ) -> ParsedCommandArgs | None:
        """Resolve the arguments of a prefix command, answering with usage help on failure."""
        tokens = split_arguments(raw_args)
        result = resolve_command_args(
            tokens,
            grammar,
            replied_author_id=resolve_reply_author_id(ctx.message) if use_reply else None,
            leading_mention_id=extract_leading_mention_id(ctx.message, tokens),
            bot_id=self._bot_user_id(),
            default_reason=default_reason,
            require_target=require_target,
        )
        if result.ok:
            return result.args

        usage, example = COMMAND_USAGE[command_name]
        embed = usage_embed(ctx.prefix or "", command_name, usage, example)
        embed.description = f"{RESOLVE_ERROR_MESSAGES[result.error]}\n\n{embed.description}"
        await ctx.reply(embed=embed, mention_author=False)
        return None

    async def resolve_target_member(self, ctx: commands.Context, target_id: str) -> discord.Member | None:
        member = await fetch_member(ctx.guild, int(target_id))
        if member is None:
            await self._reject(ctx, "That user is not a member of this server.")
        return member

    # --------------------------
    # Actions shared by prefix and slash commands
    # --------------------------
    async def perform_ban(
        self,
        guild: discord.Guild,
        moderator: discord.Member,
        user_id: int,
        delete_seconds: int,
        reason: str,
    ) -> discord.Embed:
        """Ban ``user_id``; users who already left the guild are banned by ID."""
        target = await fetch_member(guild, user_id)
        if target is not None:
            problem = check_target_policy(guild, moderator, target, guild.me, "ban")
            if problem:
                return error_embed(problem)
            subject = target
        else:
            if user_id in (moderator.id, guild.me.id, guild.owner_id):
                return error_embed("That user cannot be banned.")
            subject = discord.Object(id=user_id)

        try:
            await guild.ban(subject, delete_message_seconds=delete_seconds, reason=reason)
        except discord.Forbidden:
            return error_embed("I don't have permission to ban that user.")
        except discord.HTTPException as exc:
            logger.exception("Failed to ban %s in guild %s: %s", user_id, guild.id, exc)
            return error_embed("Failed to ban that user.")

        logger.info("[MODERATION] %s banned %s in %s (%s)", moderator, user_id, guild.id, reason)
        display = target if target is not None else f"<@{user_id}>"
        embed = success_embed(f"**{display}** has been banned.")
        embed.add_field(name="Moderator", value=moderator.mention, inline=True)
        if delete_seconds:
            embed.add_field(name="Deleted Messages", value=f"last {format_duration(delete_seconds)}", inline=True)
        embed.add_field(name="Reason", value=reason, inline=False)
        return embed

    async def perform_kick(
        self,
        guild: discord.Guild,
        moderator: discord.Member,
        target: discord.Member,
        reason: str,
    ) -> discord.Embed:
        problem = check_target_policy(guild, moderator, target, guild.me, "kick")
        if problem:
            return error_embed(problem)
        try:
            await target.kick(reason=reason)
        except discord.Forbidden:
            return error_embed("I don't have permission to kick that user.")
        except discord.HTTPException as exc:
            logger.exception("Failed to kick %s in guild %s: %s", target.id, guild.id, exc)
            return error_embed("Failed to kick that user.")

        logger.info("[MODERATION] %s kicked %s in %s (%s)", moderator, target.id, guild.id, reason)
        return moderation_embed("kicked", target, moderator, reason)

    async def perform_timeout(
        self,
        guild: discord.Guild,
        moderator: discord.Member,
        target: discord.Member,
        duration_seconds: int,
        reason: str,
    ) -> discord.Embed:
        problem = check_target_policy(guild, moderator, target, guild.me, "timeout")
        if problem:
            return error_embed(problem)
        try:
            await target.timeout_for(datetime.timedelta(seconds=duration_seconds), reason=reason)
        except discord.Forbidden:
            return error_embed("I don't have permission to timeout that user.")
        except discord.HTTPException as exc:
            logger.exception("Failed to timeout %s in guild %s: %s", target.id, guild.id, exc)
            return error_embed("Failed to timeout that user.")

        logger.info(
            "[MODERATION] %s timed out %s for %ss in %s (%s)",
            moderator, target.id, duration_seconds, guild.id, reason,
        )
        return moderation_embed("timed out", target, moderator, reason, duration_seconds)

    async def perform_purge(
        self,
        channel: discord.TextChannel,
        count: int,
        author_id: int | None = None,
    ) -> int:
        """Delete up to ``count`` recent messages, optionally only from ``author_id``.

        Messages older than two weeks are skipped since bulk delete rejects them.
        """
        cutoff = discord.utils.utcnow() - BULK_DELETE_MAX_AGE
        if author_id is None:
            deleted = await channel.purge(limit=count, after=cutoff, bulk=True)
            return len(deleted)

        remaining = count

        def from_author(message: discord.Message) -> bool:
            nonlocal remaining
            if remaining <= 0 or message.author.id != author_id:
                return False
            remaining -= 1
            return True

        deleted = await channel.purge(limit=PURGE_COUNT.maximum, check=from_author, after=cutoff, bulk=True)
        return len(deleted)

    async def change_role(
        self,
        guild: discord.Guild,
        moderator: discord.Member,
        target: discord.Member,
        role: discord.Role,
        add: bool,
    ) -> discord.Embed:
        problem = check_role_assignable(guild, moderator, role, guild.me)
        if problem:
            return error_embed(problem)
        if add and role in target.roles:
            return error_embed(f"**{target}** already has **{role.name}**.")
        if not add and role not in target.roles:
            return error_embed(f"**{target}** does not have **{role.name}**.")

        audit_reason = f"Role {'added' if add else 'removed'} by {moderator}"
        try:
            if add:
                await target.add_roles(role, reason=audit_reason)
            else:
                await target.remove_roles(role, reason=audit_reason)
        except discord.Forbidden:
            return error_embed("I don't have permission to manage that role.")
        except discord.HTTPException as exc:
            logger.exception("Failed to change role %s for %s: %s", role.id, target.id, exc)
            return error_embed("Failed to update roles.")

        verb = "Added" if add else "Removed"
        preposition = "to" if add else "from"
        logger.info("[MODERATION] %s %s role %s %s %s", moderator, verb.lower(), role.id, preposition, target.id)
        return success_embed(f"{verb} **{role.name}** {preposition} **{target}**.")

    # --------------------------
    # Prefix commands
    # --------------------------
    @commands.command(name="ban", help="Ban a user from the server.", usage=COMMAND_USAGE["ban"][0])
    async def ban_prefix(self, ctx: commands.Context, *, raw_args: str = "") -> None:
        if not await self.check_prefix_preconditions(ctx, "ban_members"):
            return
        args = await self.resolve_prefix_args(
            ctx, "ban", raw_args, BAN_DELETE_WINDOW, default_reason=f"Banned by {ctx.author}"
        )
        if args is None:
            return
        embed = await self.perform_ban(ctx.guild, ctx.author, int(args.target_id), args.value or 0, args.reason)
        await ctx.reply(embed=embed, mention_author=False)

    @commands.command(name="kick", help="Kick a user from the server.", usage=COMMAND_USAGE["kick"][0])
    async def kick_prefix(self, ctx: commands.Context, *, raw_args: str = "") -> None:
        if not await self.check_prefix_preconditions(ctx, "kick_members"):
            return
        args = await self.resolve_prefix_args(
            ctx, "kick", raw_args, None, default_reason=f"Kicked by {ctx.author}"
        )
        if args is None:
            return
        target = await self.resolve_target_member(ctx, args.target_id)
        if target is None:
            return
        embed = await self.perform_kick(ctx.guild, ctx.author, target, args.reason)
        await ctx.reply(embed=embed, mention_author=False)

    @commands.command(
        name="timeout",
        aliases=["mute"],
        help="Timeout a user for up to 28 days.",
        usage=COMMAND_USAGE["timeout"][0],
    )
    async def timeout_prefix(self, ctx: commands.Context, *, raw_args: str = "") -> None:
        if not await self.check_prefix_preconditions(ctx, "moderate_members"):
            return
        args = await self.resolve_prefix_args(ctx, "timeout", raw_args, TIMEOUT_DURATION)
        if args is None:
            return
        target = await self.resolve_target_member(ctx, args.target_id)
        if target is None:
            return
        embed = await self.perform_timeout(ctx.guild, ctx.author, target, args.value, args.reason)
        await ctx.reply(embed=embed, mention_author=False)

    @commands.command(
        name="purge",
        aliases=["clear"],
        help="Bulk delete 1-100 recent messages, optionally only from one user.",
        usage=COMMAND_USAGE["purge"][0],
    )
    async def purge_prefix(self, ctx: commands.Context, *, raw_args: str = "") -> None:
        if not await self.check_prefix_preconditions(ctx, "manage_messages"):
            return
        if not isinstance(ctx.channel, discord.TextChannel):
            await self._reject(ctx, "This command must be run in a text channel.")
            return
        args = await self.resolve_prefix_args(
            ctx, "purge", raw_args, PURGE_COUNT, require_target=False, use_reply=False
        )
        if args is None:
            return

        await safe_delete_message(ctx.message)
        # The user filter may follow the count: "Spurge 20 @user".
        target_id = args.target_id or find_user_reference(args.remaining_tokens)
        author_id = int(target_id) if target_id else None
        try:
            deleted = await self.perform_purge(ctx.channel, args.value, author_id)
        except discord.Forbidden:
            await ctx.send(embed=error_embed("I need the Manage Messages permission to purge."))
            return
        except discord.HTTPException as exc:
            logger.exception("Failed to purge messages in %s: %s", ctx.channel.id, exc)
            await ctx.send(embed=error_embed("Failed to purge messages."))
            return

        embed = success_embed(f"Successfully deleted {deleted} message(s).")
        embed.set_footer(text="Messages older than 14 days cannot be bulk-deleted.")
        await ctx.send(embed=embed, delete_after=PURGE_CONFIRMATION_SECONDS)

    async def _change_role_prefix(self, ctx: commands.Context, raw_args: str, add: bool) -> None:
        command_name = "addrole" if add else "removerole"
        if not await self.check_prefix_preconditions(ctx, "manage_roles"):
            return
        args = await self.resolve_prefix_args(ctx, command_name, raw_args, ROLE_REFERENCE, default_reason="")
        if args is None:
            return

        role_name = " ".join(args.remaining_tokens) if args.value is None else None
        role = find_role(ctx.guild, args.value, role_name)
        if role is None:
            usage, example = COMMAND_USAGE[command_name]
            embed = usage_embed(ctx.prefix or "", command_name, usage, example)
            embed.description = f"I couldn't find that role.\n\n{embed.description}"
            await ctx.reply(embed=embed, mention_author=False)
            return

        target = await self.resolve_target_member(ctx, args.target_id)
        if target is None:
            return
        embed = await self.change_role(ctx.guild, ctx.author, target, role, add)
        await ctx.reply(embed=embed, mention_author=False)

    @commands.command(name="addrole", help="Give a role to a user.", usage=COMMAND_USAGE["addrole"][0])
    async def addrole_prefix(self, ctx: commands.Context, *, raw_args: str = "") -> None:
        await self._change_role_prefix(ctx, raw_args, add=True)

    @commands.command(name="removerole", help="Take a role from a user.", usage=COMMAND_USAGE["removerole"][0])
    async def removerole_prefix(self, ctx: commands.Context, *, raw_args: str = "") -> None:
        await self._change_role_prefix(ctx, raw_args, add=False)

    # --------------------------
    # Slash commands
    # --------------------------
    async def check_slash_preconditions(self, ctx: discord.ApplicationContext, permission_name: str) -> bool:
        if ctx.guild is None:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        if not has_permissions(ctx, **{permission_name: True}):
            await ctx.respond("You do not have permission to use this command.", ephemeral=True)
            return False
        if not bot_has_permissions(ctx.guild, **{permission_name: True}):
            await ctx.respond("I am missing the permission required for this command.", ephemeral=True)
            return False
        return True

    @commands.slash_command(name="ban", description="Ban a user from the server.")
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to ban.", required=True),  # type: ignore
        reason: Option(str, "Reason for the ban.", default=None),  # type: ignore
        delete_days: Option(int, "Delete this many days of their messages (0-7).", min_value=0, max_value=7, default=0),  # type: ignore
    ) -> None:
        if not await self.check_slash_preconditions(ctx, "ban_members"):
            return
        await ctx.defer()
        delete_seconds = BAN_DELETE_WINDOW.clamp(delete_days * 86_400)
        embed = await self.perform_ban(ctx.guild, ctx.author, user.id, delete_seconds, reason or f"Banned by {ctx.author}")
        await ctx.respond(embed=embed)

    @commands.slash_command(name="kick", description="Kick a user from the server.")
    async def kick(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to kick.", required=True),  # type: ignore
        reason: Option(str, "Reason for the kick.", default=None),  # type: ignore
    ) -> None:
        if not await self.check_slash_preconditions(ctx, "kick_members"):
            return
        if not isinstance(user, discord.Member):
            await ctx.respond("The specified user is not a member of this server.", ephemeral=True)
            return
        await ctx.defer()
        embed = await self.perform_kick(ctx.guild, ctx.author, user, reason or f"Kicked by {ctx.author}")
        await ctx.respond(embed=embed)

    @commands.slash_command(name="timeout", description="Timeout a user for a duration such as 10m or 2h.")
    async def timeout(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to timeout.", required=True),  # type: ignore
        duration: Option(str, "Duration, e.g. 30s, 10m, 2h, 7d (max 28d).", required=True),  # type: ignore
        reason: Option(str, "Reason for the timeout.", default=DEFAULT_REASON),  # type: ignore
    ) -> None:
        if not await self.check_slash_preconditions(ctx, "moderate_members"):
            return
        if not isinstance(user, discord.Member):
            await ctx.respond("The specified user is not a member of this server.", ephemeral=True)
            return
        duration_seconds = match_grammar_token(duration.strip(), TIMEOUT_DURATION)
        if duration_seconds is None:
            await ctx.respond(RESOLVE_ERROR_MESSAGES[ResolveError.NO_DURATION_TOKEN], ephemeral=True)
            return
        await ctx.defer()
        embed = await self.perform_timeout(ctx.guild, ctx.author, user, duration_seconds, reason)
        await ctx.respond(embed=embed)

    @commands.slash_command(name="purge", description="Bulk delete 1-100 recent messages.")
    async def purge(
        self,
        ctx: discord.ApplicationContext,
        amount: Option(int, "How many messages to delete.", min_value=1, max_value=100, required=True),  # type: ignore
        user: Option(discord.User, "Only delete messages from this user.", default=None),  # type: ignore
    ) -> None:
        if not await self.check_slash_preconditions(ctx, "manage_messages"):
            return
        if not isinstance(ctx.channel, discord.TextChannel):
            await ctx.respond("This command must be run in a text channel.", ephemeral=True)
            return
        await ctx.defer(ephemeral=True)
        try:
            deleted = await self.perform_purge(ctx.channel, PURGE_COUNT.clamp(amount), user.id if user else None)
        except discord.HTTPException as exc:
            logger.exception("Failed to purge messages in %s: %s", ctx.channel.id, exc)
            await ctx.respond(embed=error_embed("Failed to purge messages."), ephemeral=True)
            return
        await ctx.respond(embed=success_embed(f"Successfully deleted {deleted} message(s)."), ephemeral=True)


def setup(discord_bot_instance):
    """Register the ModerationActionCog with the bot."""
    discord_bot_instance.add_cog(ModerationActionCog(discord_bot_instance))
