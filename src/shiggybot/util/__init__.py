"""
Utility functions and helpers for ShiggyBot.

This package provides reusable utilities:

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers, and per-session log aggregation.
- **discord_utils.py**: Stateless Discord helpers (permission checks, member
  and role lookups, reply fallbacks, text formatting).
- **embeds.py**: Embed builders shared by the cogs.
"""
