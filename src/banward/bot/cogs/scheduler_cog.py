"""Cog that reconciles the persisted unban schedule once the bot is connected."""

from __future__ import annotations

import discord
from discord.ext import commands

from banward.scheduler.unban_scheduler import UnbanScheduler
from banward.util.logger import get_logger

logger = get_logger("scheduler_cog")


class UnbanSchedulerCog(commands.Cog):
    """
    Starts the :class:`UnbanScheduler` on the first ``on_ready``.

    The executor needs a logged-in client to resolve guilds, so
    reconciliation waits for the gateway instead of running at import time.
    ``on_ready`` fires again after reconnects; only the first one starts
    the scheduler.
    """

    def __init__(self, bot: discord.Bot, scheduler: UnbanScheduler) -> None:
        self.bot = bot
        self.scheduler = scheduler
        self.started = False

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self.started:
            return
        self.started = True

        try:
            report = await self.scheduler.start()
        except Exception:
            logger.exception("[UNBAN_SCHEDULER] Reconciliation failed")
            return

        if report.corrupt:
            logger.warning("[UNBAN_SCHEDULER] Schedule record was corrupt; pending unbans were lost")
        logger.info(
            "[UNBAN_SCHEDULER] Started (fired %d overdue, armed %d)", report.fired, report.armed
        )


def setup(bot: discord.Bot, scheduler: UnbanScheduler) -> None:
    bot.add_cog(UnbanSchedulerCog(bot, scheduler))
