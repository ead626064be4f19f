"""
command_parsing.py
==================

Argument resolution for prefix moderation commands.

Moderators invoke commands in several shapes::

    Sban @user spamming links          (leading mention)
    Sban 123456789012345678 spam       (raw ID)
    Stimeout 10m being rude            (as a reply to the offender)
    Stimeout @user being rude 10m      (token at any position)

:func:`resolve_command_args` turns the whitespace-split tokens plus the
message context into a :class:`ResolveResult`. It performs no I/O; the
caller decides who may be targeted.
"""

from __future__ import annotations

import re
from typing import List, Sequence

from shiggybot.datatypes.command_datatypes import (
    ParsedCommandArgs,
    ResolveError,
    ResolveResult,
    TokenGrammar,
    TokenKind,
)

DEFAULT_REASON = "No reason provided"

USER_MENTION_PATTERN = re.compile(r"^<@!?(\d+)>$")
ROLE_MENTION_PATTERN = re.compile(r"^<@&(\d+)>$")
SNOWFLAKE_PATTERN = re.compile(r"^\d{16,20}$")
DURATION_PATTERN = re.compile(r"^(\d+)(s|sec|secs|m|min|mins|h|hr|hrs|d|day|days)$", re.IGNORECASE)
COUNT_PATTERN = re.compile(r"^\d+$")

UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3_600,
    "d": 86_400,
}

MISSING_TOKEN_ERRORS = {
    TokenKind.DURATION: ResolveError.NO_DURATION_TOKEN,
    TokenKind.COUNT: ResolveError.NO_COUNT_TOKEN,
}


def split_arguments(text: str | None) -> List[str]:
    """Split raw command text on any run of whitespace."""
    return (text or "").split()


def parse_duration_seconds(token: str) -> int | None:
    """Convert a duration token such as ``"10m"`` or ``"2days"`` into seconds."""
    match = DURATION_PATTERN.match(token)
    if not match:
        return None
    amount, unit = match.groups()
    return int(amount) * UNIT_SECONDS[unit[0].lower()]


def parse_user_reference(token: str) -> str | None:
    """Return the user ID of a ``<@id>``/``<@!id>`` mention or a bare snowflake."""
    mention = USER_MENTION_PATTERN.match(token)
    if mention:
        return mention.group(1)
    if SNOWFLAKE_PATTERN.match(token):
        return token
    return None


def find_user_reference(tokens: Sequence[str]) -> str | None:
    """Return the first user mention or bare snowflake among ``tokens``."""
    for token in tokens:
        user_id = parse_user_reference(token)
        if user_id is not None:
            return user_id
    return None


def parse_role_reference(token: str) -> int | None:
    """Return the role ID of a ``<@&id>`` mention or a bare snowflake."""
    mention = ROLE_MENTION_PATTERN.match(token)
    if mention:
        return int(mention.group(1))
    if SNOWFLAKE_PATTERN.match(token):
        return int(token)
    return None


def match_grammar_token(token: str, grammar: TokenGrammar) -> int | None:
    """Return the canonical value of ``token`` under ``grammar``, or None.

    Durations and counts are clamped into the grammar's bounds rather than
    rejected.
    """
    if grammar.kind is TokenKind.DURATION:
        seconds = parse_duration_seconds(token)
        return None if seconds is None else grammar.clamp(seconds)
    if grammar.kind is TokenKind.COUNT:
        if not COUNT_PATTERN.match(token):
            return None
        return grammar.clamp(int(token))
    return parse_role_reference(token)


def _resolve_target(
    tokens: List[str],
    replied_author_id: str | None,
    leading_mention_id: str | None,
    bot_id: str | None,
) -> str | None:
    """Pick the target and drop the token it came from, if any."""
    if replied_author_id and replied_author_id != bot_id:
        return replied_author_id

    if leading_mention_id and tokens:
        tokens.pop(0)
        return leading_mention_id

    if tokens:
        target_id = parse_user_reference(tokens[0])
        if target_id is not None:
            tokens.pop(0)
            return target_id

    return None


def resolve_command_args(
    raw_args: Sequence[str],
    grammar: TokenGrammar | None = None,
    *,
    replied_author_id: str | int | None = None,
    leading_mention_id: str | int | None = None,
    bot_id: str | int | None = None,
    default_reason: str = DEFAULT_REASON,
    require_target: bool = True,
) -> ResolveResult:
    """Resolve a target, an optional grammar token and a reason from ``raw_args``.

    Target resolution, first match wins:

    1. ``replied_author_id`` when the command replies to someone other than
       the bot. No token is consumed.
    2. ``leading_mention_id`` (the caller's parsed mention of the first
       token). The first token is consumed.
    3. A first token that is a bare 16-20 digit ID or a ``<@id>`` mention.
       The first token is consumed.

    After the target, the first remaining token at any position that fits
    ``grammar`` is removed and its clamped value recorded. Whatever is left
    is joined with single spaces into the reason.

    Args:
        raw_args: Whitespace-split argument tokens.
        grammar: Secondary token the command accepts, if any.
        replied_author_id: Author of the message being replied to.
        leading_mention_id: User ID mentioned by the first token.
        bot_id: The bot's own user ID; replies to the bot are not targets.
        default_reason: Reason used when the leftover text is blank.
        require_target: When False, a missing target is not an error.

    Returns:
        ResolveResult: Parsed arguments, or the first failure encountered.

    Raises:
        TypeError: If ``raw_args`` is None.
    """
    if raw_args is None:
        raise TypeError("raw_args must be a sequence of tokens, not None")

    tokens = [str(token) for token in raw_args]
    bot_key = str(bot_id) if bot_id is not None else None
    target_id = _resolve_target(
        tokens,
        str(replied_author_id) if replied_author_id is not None else None,
        str(leading_mention_id) if leading_mention_id is not None else None,
        bot_key,
    )
    if target_id is None and require_target:
        return ResolveResult.failure(ResolveError.NO_TARGET)

    matched_token: str | None = None
    matched_value: int | None = None
    if grammar is not None:
        for index, token in enumerate(tokens):
            value = match_grammar_token(token, grammar)
            if value is not None:
                matched_token, matched_value = tokens.pop(index), value
                break
        if matched_token is None and grammar.required:
            return ResolveResult.failure(MISSING_TOKEN_ERRORS.get(grammar.kind, ResolveError.NO_TARGET))

    reason = " ".join(tokens).strip() or default_reason
    return ResolveResult.success(ParsedCommandArgs(
        target_id=target_id,
        token=matched_token,
        value=matched_value,
        remaining_tokens=tuple(tokens),
        reason=reason,
    ))
