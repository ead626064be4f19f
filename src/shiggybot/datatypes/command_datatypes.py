"""
Data types shared by the moderation argument resolver and its callers.

A prefix moderation command receives its arguments as whitespace-split tokens.
The resolver turns them into a :class:`ParsedCommandArgs` (or a failure
reason) using the :class:`TokenGrammar` of the command being run.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

SECONDS_PER_DAY = 86_400


class TokenKind(Enum):
    """Kind of secondary token a moderation command looks for."""

    DURATION = "duration"
    COUNT = "count"
    ROLE = "role"


@dataclass(frozen=True, slots=True)
class TokenGrammar:
    """Describe the secondary token one command accepts.

    ``minimum``/``maximum`` bound the canonical value (seconds for durations,
    messages for counts). Out-of-range values are clamped into the bounds.
    Role references have no numeric bounds.
    """

    kind: TokenKind
    minimum: int | None = None
    maximum: int | None = None
    required: bool = False

    def clamp(self, value: int) -> int:
        if self.minimum is not None:
            value = max(self.minimum, value)
        if self.maximum is not None:
            value = min(self.maximum, value)
        return value


# Discord caps member timeouts at 28 days.
TIMEOUT_DURATION = TokenGrammar(TokenKind.DURATION, minimum=1, maximum=28 * SECONDS_PER_DAY, required=True)
# Ban message-deletion window, 0 to 7 days.
BAN_DELETE_WINDOW = TokenGrammar(TokenKind.DURATION, minimum=0, maximum=7 * SECONDS_PER_DAY, required=False)
# Bulk delete accepts 1 to 100 messages per call.
PURGE_COUNT = TokenGrammar(TokenKind.COUNT, minimum=1, maximum=100, required=True)
ROLE_REFERENCE = TokenGrammar(TokenKind.ROLE, required=False)


class ResolveError(Enum):
    """Reasons argument resolution can fail."""

    NO_TARGET = "no-target"
    NO_DURATION_TOKEN = "no-duration-token"
    NO_COUNT_TOKEN = "no-count-token"


@dataclass(frozen=True, slots=True)
class ParsedCommandArgs:
    """Successful outcome of resolving a moderation command's arguments.

    Attributes:
        target_id: Snowflake of the user the command acts on, if any.
        token: The raw secondary token that matched the grammar (e.g. ``"10m"``).
        value: Canonical value of ``token``: seconds, a count, or a role ID.
        remaining_tokens: Tokens left after target and token extraction, in order.
        reason: ``remaining_tokens`` joined by single spaces, or the default reason.
    """

    target_id: str | None
    token: str | None = None
    value: int | None = None
    remaining_tokens: tuple[str, ...] = ()
    reason: str = ""


@dataclass(frozen=True, slots=True)
class ResolveResult:
    """Either parsed arguments or the reason they could not be resolved."""

    args: ParsedCommandArgs | None = None
    error: ResolveError | None = None

    @classmethod
    def success(cls, args: ParsedCommandArgs) -> "ResolveResult":
        return cls(args=args)

    @classmethod
    def failure(cls, error: ResolveError) -> "ResolveResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None and self.args is not None
