"""
ShiggyBot
=========

A Discord bot for the ShiggyCord community: moderation commands that accept
free-form arguments, plugin lookup, repository link previews, auto-role on
join and sticky notes.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. SHIGGYBOT_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the project root.
    """
    if env_home := os.getenv("SHIGGYBOT_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from discord.ext import commands
from dotenv import load_dotenv

from shiggybot.configuration.app_configuration import app_config
from shiggybot.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        logger.critical("'DISCORD_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the intents needed for commands, previews and auto-role."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def get_prefix(bot: commands.Bot, message: discord.Message) -> list[str]:
    """Return the configured prefix in whatever case the message used it.

    ``Sban``, ``sban`` and ``SBAN`` all invoke ``ban``.
    """
    prefix = app_config.prefix
    content = message.content or ""
    if content[: len(prefix)].lower() == prefix.lower():
        return [content[: len(prefix)]]
    return [prefix]


def load_cogs(discord_bot_instance: commands.Bot) -> None:
    """Register all cogs with the provided bot instance."""
    from shiggybot.bot.cogs import events_listener, moderation_cmds, plugin_cmds, preview_listener, utility_cmds

    events_listener.setup(discord_bot_instance)
    moderation_cmds.setup(discord_bot_instance)
    plugin_cmds.setup(discord_bot_instance)
    utility_cmds.setup(discord_bot_instance)
    preview_listener.setup(discord_bot_instance)

    logger.info("All cogs loaded successfully.")


def create_bot() -> commands.Bot:
    """Instantiate the bot and register all cogs."""
    dev_guild_id = app_config.dev_guild_id
    bot = commands.Bot(
        command_prefix=get_prefix,
        intents=build_intents(),
        help_command=None,
        case_insensitive=True,
        debug_guilds=[dev_guild_id] if dev_guild_id else None,
        allowed_mentions=discord.AllowedMentions(everyone=False, roles=False),
    )
    load_cogs(bot)
    return bot


async def start_bot(bot: commands.Bot, token: str) -> None:
    """Start the bot and log around the connection lifecycle."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: commands.Bot) -> None:
    """Close the Discord connection."""
    if not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the bot: %s", exc)
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap and run the bot, returning an exit code."""
    token = load_environment()

    try:
        bot = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except discord.LoginFailure as exc:
        logger.critical("Discord rejected the bot token: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting ShiggyBot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
