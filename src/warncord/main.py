"""
Warncord Discord Bot
====================

A Discord bot that deletes messages containing filtered words, warns the
authors, and escalates repeat offenders to timeouts and bans.
"""

import asyncio
import os
import sys
from pathlib import Path

import discord
from dotenv import load_dotenv

from warncord.bot.discord_platform import DiscordPlatform
from warncord.configuration.app_configuration import CONFIG_RELATIVE_PATH, AppConfig
from warncord.database.database import Database
from warncord.moderation.services import ModerationServices, build_services
from warncord.util.logger import get_logger, handle_exception


logger = get_logger("main")


def resolve_base_dir() -> Path:
    """Directory holding config/, data/ and .env.

    ``WARNCORD_HOME`` wins when set. A frozen build uses the executable's
    directory; a source checkout uses the repository root.
    """
    if env_home := os.getenv("WARNCORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


def load_environment(base_dir: Path) -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=base_dir / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("DISCORD_BOT_TOKEN is not set; add it to %s or the environment.", base_dir / ".env")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for reading message content and seeing member joins."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, services: ModerationServices, config: AppConfig) -> None:
    """Register all cogs with the provided Discord bot instance."""
    from warncord.bot.cogs import events_listener, message_listener, moderation_cmds

    events_listener.setup(discord_bot_instance, services, config.presence_text)
    message_listener.setup(discord_bot_instance, services)
    moderation_cmds.setup(discord_bot_instance, services)

    logger.info("Registered events, message and moderation cogs.")


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection."""
    logger.info("Connecting to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Connection task cancelled")
    finally:
        logger.info("Disconnected from Discord.")


async def shutdown_runtime(bot: discord.Bot | None, database: Database) -> None:
    """Close the Discord connection and the database."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord bot: %s", exc)

    await database.shutdown()
    logger.info("Shutdown complete.")


async def async_main(base_dir: Path) -> int:
    """Bootstrap the database, services and bot, returning an exit code."""
    token = load_environment(base_dir)
    config = AppConfig(base_dir / CONFIG_RELATIVE_PATH)

    database = Database(config.database_path(base_dir))
    if not await database.initialize():
        logger.critical("Failed to initialize database at %s", database.db_path)
        return 1

    bot: discord.Bot | None = None
    exit_code = 0
    try:
        bot = discord.Bot(intents=build_intents())
        services = build_services(database, DiscordPlatform(bot))
        await services.policies.seed_terms(config.default_filter_terms)
        load_cogs(bot, services, config)
        await start_bot(bot, token)
    except discord.LoginFailure as exc:
        logger.critical("Discord rejected the bot token: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc, exc_info=True)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, database)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    base_dir = resolve_base_dir()
    os.chdir(base_dir)

    logger.info("Starting Warncord…")
    try:
        return asyncio.run(async_main(base_dir))
    except KeyboardInterrupt:
        logger.info("Interrupted; exiting.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 0 if code is None else 1


if __name__ == "__main__":
    sys.exit(main())
