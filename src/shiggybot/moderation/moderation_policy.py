"""
Targeting rules for moderation commands.

The argument resolver only finds *who* a command names; these checks decide
whether that member may actually be acted on. Each check returns an error
message for the invoker, or None when the action is allowed.
"""

from __future__ import annotations

import discord


def check_target_policy(
    guild: discord.Guild,
    moderator: discord.Member,
    target: discord.Member,
    bot_member: discord.Member,
    action: str,
) -> str | None:
    """Validate that ``moderator`` may ``action`` ``target`` and that the bot can.

    Refuses self-targeting, targeting the bot, targeting the guild owner,
    targets whose top role is not below the moderator's (unless the moderator
    owns the guild) and targets the bot's own top role cannot reach.
    """
    if target.id == moderator.id:
        return f"You cannot {action} yourself."
    if target.id == bot_member.id:
        return f"I cannot {action} myself."
    if target.id == guild.owner_id:
        return f"You cannot {action} the server owner."
    if moderator.id != guild.owner_id and target.top_role >= moderator.top_role:
        return f"You cannot {action} someone with an equal or higher role."
    if target.top_role >= bot_member.top_role:
        return f"I cannot {action} someone with an equal or higher role than mine."
    return None


def check_role_assignable(
    guild: discord.Guild,
    moderator: discord.Member,
    role: discord.Role,
    bot_member: discord.Member,
) -> str | None:
    """Validate that ``role`` can be given or taken by both the moderator and the bot."""
    if role.is_default():
        return "The @everyone role cannot be assigned."
    if role.managed:
        return f"**{role.name}** is managed by an integration and cannot be assigned."
    if moderator.id != guild.owner_id and role >= moderator.top_role:
        return f"You cannot manage **{role.name}** because it is not below your highest role."
    if role >= bot_member.top_role:
        return f"I cannot manage **{role.name}** because it is not below my highest role."
    return None
