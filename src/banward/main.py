"""
Banward
=======

A Discord moderation bot whose temporary bans survive restarts: every
``/tempban`` is written to a durable schedule and lifted on time, and bans
that expired while the bot was offline are lifted as soon as it reconnects.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. BANWARD_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("BANWARD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from banward.bot.unban_executor import UnbanExecutor
from banward.configuration.app_configuration import AppConfig, app_config
from banward.scheduler.schedule_store import ScheduleStore
from banward.scheduler.unban_scheduler import UnbanScheduler
from banward.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the intents needed to resolve guilds and ban members."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def create_bot(config: AppConfig) -> discord.Bot:
    debug_guilds = config.debug_guild_ids or None
    if debug_guilds:
        logger.info("Registering slash commands on debug guilds %s", debug_guilds)
    return discord.Bot(intents=build_intents(), debug_guilds=debug_guilds)


def create_scheduler(bot: discord.Bot, config: AppConfig) -> UnbanScheduler:
    """Build the unban scheduler with an executor bound to ``bot``."""
    executor = UnbanExecutor(
        bot,
        notification_channel_id=config.notification_channel_id,
        reason=config.unban_reason,
    )
    store = ScheduleStore(config.schedule_store_path)
    logger.info("Persisting temporary bans to %s", store.path.resolve())
    return UnbanScheduler(store, executor, min_delay_ms=config.min_delay_ms)


def load_cogs(discord_bot_instance: discord.Bot, scheduler: UnbanScheduler) -> None:
    """Register all cogs, handing each the shared scheduler."""
    from banward.bot.cogs import moderation_cmds, scheduler_cog

    scheduler_cog.setup(discord_bot_instance, scheduler)
    moderation_cmds.setup(discord_bot_instance, scheduler)

    logger.info("All cogs loaded successfully.")


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot, scheduler: UnbanScheduler) -> None:
    """Disarm pending unbans and close the Discord connection.

    The schedule record stays on disk; the next start reconciles it.
    """
    try:
        await scheduler.shutdown()
    except Exception as exc:
        logger.exception("Error during scheduler shutdown: %s", exc)

    if not bot.is_closed():
        await bot.close()

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the bot and scheduler, returning an exit code."""
    token = load_environment()

    try:
        bot = create_bot(app_config)
        scheduler = create_scheduler(bot, app_config)
        load_cogs(bot, scheduler)
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
        await shutdown_runtime(bot, scheduler)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting Banward…")
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
    sys.exit(main())
