"""
discord_utils.py
================

Low-level Discord helpers for ShiggyBot.

Stateless functions for permission checks, member and role lookups, reply
fallbacks and text formatting. Higher-level cogs call into these; nothing
here keeps state.
"""

from __future__ import annotations

from typing import Sequence

import discord

from shiggybot.moderation.command_parsing import USER_MENTION_PATTERN
from shiggybot.util.logger import get_logger

logger = get_logger("discord_utils")


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Shorten ``text`` to at most ``limit`` characters, ending with ``suffix``."""
    if len(text) <= limit:
        return text
    if limit <= len(suffix):
        return text[:limit]
    return text[: limit - len(suffix)] + suffix


def format_duration(seconds: int) -> str:
    """
    Format a duration in seconds to a short human-readable string.

    Args:
        seconds (int): Duration in seconds.

    Returns:
        str: e.g. ``"2d 3h"``, ``"10m"``, ``"45s"``; ``"0s"`` for zero.
    """
    if seconds <= 0:
        return "0s"
    parts = []
    for unit_seconds, suffix in ((86_400, "d"), (3_600, "h"), (60, "m"), (1, "s")):
        amount, seconds = divmod(seconds, unit_seconds)
        if amount:
            parts.append(f"{amount}{suffix}")
    return " ".join(parts)


def has_permissions(context, **required_permissions) -> bool:
    """
    Check if the command author has every listed guild permission.

    Works with both prefix :class:`commands.Context` and slash
    :class:`discord.ApplicationContext`, which both expose ``author``.

    Returns:
        bool: True if all permissions are present, False otherwise.
    """
    if not isinstance(context.author, discord.Member):
        return False
    return all(
        getattr(context.author.guild_permissions, permission_name, False)
        for permission_name in required_permissions
    )


def bot_has_permissions(guild: discord.Guild, **required_permissions) -> bool:
    """Check if the bot's own member in ``guild`` has every listed permission."""
    me = guild.me
    if me is None:
        return False
    return all(getattr(me.guild_permissions, permission_name, False) for permission_name in required_permissions)


def resolve_reply_author_id(message: discord.Message) -> int | None:
    """Return the author ID of the message ``message`` replies to, if cached."""
    reference = message.reference
    if reference is None:
        return None
    resolved = reference.resolved or reference.cached_message
    if isinstance(resolved, discord.Message):
        return resolved.author.id
    return None


def extract_leading_mention_id(message: discord.Message, tokens: Sequence[str]) -> int | None:
    """Return the user mentioned by the first token, if Discord parsed it as a mention.

    Only IDs listed in ``message.raw_mentions`` are returned. Mention-shaped
    text that Discord did not parse yields None here; the resolver's own
    first-token parse may still pick it up as a user reference.
    """
    if not tokens:
        return None
    match = USER_MENTION_PATTERN.match(tokens[0])
    if not match:
        return None
    mentioned = int(match.group(1))
    return mentioned if mentioned in message.raw_mentions else None


async def fetch_member(guild: discord.Guild, user_id: int) -> discord.Member | None:
    """Return the guild member for ``user_id`` from cache, then from the API."""
    member = guild.get_member(user_id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(user_id)
    except discord.NotFound:
        return None
    except discord.HTTPException as exc:
        logger.warning("Failed to fetch member %s in guild %s: %s", user_id, guild.id, exc)
        return None


def find_role(guild: discord.Guild, role_id: int | None, role_name: str | None) -> discord.Role | None:
    """Look a role up by ID, falling back to a case-insensitive name match."""
    if role_id is not None:
        role = guild.get_role(role_id)
        if role is not None:
            return role
    if role_name:
        wanted = role_name.strip().lower()
        for role in guild.roles:
            if role.name.lower() == wanted:
                return role
    return None


async def safe_reply(message: discord.Message, **kwargs) -> discord.Message | None:
    """Reply to ``message``, falling back to a channel send and then a DM.

    Replies fail when the original message was deleted meanwhile or the bot
    cannot read history; a DM is the last resort.
    """
    try:
        return await message.reply(**kwargs)
    except discord.HTTPException as exc:
        logger.debug("Reply failed (%s); sending to channel instead", exc)

    try:
        return await message.channel.send(**kwargs)
    except discord.HTTPException as exc:
        logger.debug("Channel send failed (%s); trying DM", exc)

    try:
        return await message.author.send(**kwargs)
    except discord.HTTPException as exc:
        logger.warning("Could not deliver response for message %s: %s", message.id, exc)
        return None


async def safe_delete_message(message: discord.Message, delay: float | None = None) -> bool:
    """Delete ``message``, returning False instead of raising when it is already gone."""
    try:
        await message.delete(delay=delay)
        return True
    except discord.NotFound:
        return False
    except discord.Forbidden:
        logger.warning("Missing permission to delete message %s", message.id)
        return False
    except discord.HTTPException as exc:
        logger.error("Failed to delete message %s: %s", message.id, exc)
        return False
