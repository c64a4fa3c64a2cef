"""
Executor callback that lifts a temporary ban when its deadline fires.

The scheduler only knows ids; this module turns them back into Discord
objects, performs the unban, and translates every Discord failure into an
``ExecutionError`` so the scheduler can log it and move on.
"""

import datetime

import discord

from banward.configuration.app_configuration import DEFAULT_UNBAN_REASON
from banward.datatypes.schedule_datatypes import ActionKind
from banward.scheduler.errors import ExecutionError
from banward.util.logger import get_logger

logger = get_logger("unban_executor")


class UnbanExecutor:
    """
    Callable passed to :class:`UnbanScheduler` as its executor.

    Attributes:
        bot (discord.Bot): Logged-in client used to resolve guilds and users.
        notification_channel_id (int | None): Channel receiving an embed after each unban.
        reason (str): Audit log reason for the unban.
    """

    def __init__(
        self,
        bot: discord.Bot,
        *,
        notification_channel_id: int | None = None,
        reason: str = DEFAULT_UNBAN_REASON,
    ) -> None:
        self.bot = bot
        self.notification_channel_id = notification_channel_id
        self.reason = reason

    async def __call__(self, scope_id: int, subject_id: int, kind: ActionKind) -> None:
        if kind is not ActionKind.LIFT_BAN:
            raise ExecutionError(f"Unsupported action kind {kind!r}")

        guild = await self.resolve_guild(scope_id)

        try:
            await guild.unban(discord.Object(id=subject_id), reason=self.reason)
        except discord.NotFound as exc:
            raise ExecutionError(f"User {subject_id} is not banned in guild {scope_id}") from exc
        except discord.Forbidden as exc:
            raise ExecutionError(f"Missing permission to unban in guild {scope_id}") from exc
        except discord.HTTPException as exc:
            raise ExecutionError(f"Discord rejected unban of {subject_id}: {exc}") from exc

        logger.debug("[UNBAN_EXECUTOR] Unbanned %s in guild %s", subject_id, scope_id)
        await self.notify(guild, subject_id)

    async def resolve_guild(self, guild_id: int) -> discord.Guild:
        """Return the guild from cache, falling back to the API.

        Raises:
            ExecutionError: If the bot can no longer reach the guild.
        """
        guild = self.bot.get_guild(guild_id)
        if guild is not None:
            return guild

        try:
            return await self.bot.fetch_guild(guild_id)
        except (discord.NotFound, discord.Forbidden) as exc:
            raise ExecutionError(f"Guild {guild_id} is no longer reachable") from exc
        except discord.HTTPException as exc:
            raise ExecutionError(f"Could not fetch guild {guild_id}: {exc}") from exc

    async def notify(self, guild: discord.Guild, user_id: int) -> None:
        """Post an embed about the lifted ban; failures are only logged."""
        if self.notification_channel_id is None:
            return

        channel = guild.get_channel(self.notification_channel_id)
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            logger.debug(
                "[UNBAN_EXECUTOR] Notification channel %s not found in guild %s",
                self.notification_channel_id, guild.id,
            )
            return

        try:
            embed = discord.Embed(
                title="🔓 User Unbanned",
                description=f"<@{user_id}> (`{user_id}`) has been unbanned.\n{self.reason}",
                color=discord.Color.green(),
                timestamp=datetime.datetime.now(datetime.timezone.utc),
            )
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            logger.warning("[UNBAN_EXECUTOR] Could not send unban notification for %s: %s", user_id, exc)
