"""
Moderation cog: ban, unban and temporary ban slash commands.

Design notes
- Every command requires the ``ban_members`` permission; denials are answered
  ephemerally before any work is done.
- ``/ban`` and ``/unban`` accept several ids or mentions separated by spaces and
  report one result line per id, so one bad id does not abort the batch.
- ``/tempban`` bans the user and hands the deadline to the shared
  :class:`UnbanScheduler`, which persists it and lifts the ban on time even
  across restarts. Manual ``/ban`` and ``/unban`` cancel any pending timed unban.

Quick usage example
    scheduler = UnbanScheduler(ScheduleStore(path), UnbanExecutor(bot))
    bot.add_cog(ModerationCog(bot, scheduler))
"""

import discord
from discord import Option
from discord.ext import commands

from banward.datatypes.schedule_datatypes import now_ms
from banward.scheduler.errors import SchedulerError
from banward.scheduler.unban_scheduler import UnbanScheduler
from banward.util.discord_utils import (
    UNIT_CHOICES,
    duration_to_milliseconds,
    format_due_at,
    has_permissions,
    parse_user_id,
    parse_user_ids,
)
from banward.util.logger import get_logger

logger = get_logger("moderation_cog")

MAX_MESSAGE_LENGTH = 2000


def truncate_message(content: str) -> str:
    if len(content) <= MAX_MESSAGE_LENGTH:
        return content
    return content[: MAX_MESSAGE_LENGTH - 15] + "\n… (truncated)"


class ModerationCog(commands.Cog):
    """Slash commands that ban, unban and temporarily ban guild members.

    Parameters
    ----------
    discord_bot_instance:
        Active :class:`discord.Bot` instance.
    scheduler:
        Scheduler that lifts temporary bans when they expire.
    """

    def __init__(self, discord_bot_instance, scheduler: UnbanScheduler):
        self.discord_bot_instance = discord_bot_instance
        self.scheduler = scheduler
        logger.info("Moderation cog loaded")

    async def check_ban_permission(self, ctx: discord.ApplicationContext) -> bool:
        """Reply ephemerally and return False unless the invoker may ban members."""
        if ctx.guild is None:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False

        if not has_permissions(ctx, ban_members=True):
            await ctx.respond("You do not have permission to ban members.", ephemeral=True)
            return False

        return True

    def protected_reason(self, ctx: discord.ApplicationContext, user_id: int) -> str | None:
        """Return why ``user_id`` may not be banned from here, or None."""
        if user_id == ctx.author.id:
            return "you cannot ban yourself"
        bot_user = getattr(self.discord_bot_instance, "user", None)
        if bot_user is not None and user_id == bot_user.id:
            return "the bot cannot ban itself"
        return None

    async def cancel_pending_unban(self, guild_id: int, user_id: int) -> bool:
        try:
            return await self.scheduler.cancel(guild_id, user_id)
        except SchedulerError as exc:
            logger.warning("Could not cancel pending unban for %s in guild %s: %s", user_id, guild_id, exc)
            return False

    @commands.slash_command(name="ban", description="Ban one or more users by id or mention.")
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        ids: Option(str, "User ids or mentions separated by spaces.", required=True),  # type: ignore
        reason: Option(str, "Reason for the ban.", default="No reason provided."),  # type: ignore
    ) -> None:
        """Ban every listed user permanently, replacing any pending timed unban."""
        if not await self.check_ban_permission(ctx):
            return
        await ctx.defer()

        user_ids, invalid = parse_user_ids(ids)
        results = [f"⚠️ Not a user id: {token}" for token in invalid]

        for user_id in user_ids:
            protected = self.protected_reason(ctx, user_id)
            if protected:
                results.append(f"⚠️ Skipped {user_id}: {protected}")
                continue
            try:
                await ctx.guild.ban(discord.Object(id=user_id), reason=f"Banned by {ctx.author}: {reason}")
            except discord.HTTPException as exc:
                logger.warning("Ban of %s in guild %s failed: %s", user_id, ctx.guild.id, exc)
                results.append(f"⚠️ Could not ban {user_id}")
                continue

            await self.cancel_pending_unban(ctx.guild.id, user_id)
            results.append(f"✅ Banned <@{user_id}> ({user_id})")

        await ctx.send_followup(truncate_message("\n".join(results) or "No user ids given."))

    @commands.slash_command(name="unban", description="Unban one or more users by id.")
    async def unban(
        self,
        ctx: discord.ApplicationContext,
        ids: Option(str, "User ids separated by spaces.", required=True),  # type: ignore
    ) -> None:
        """Unban every listed user and drop their pending timed unban."""
        if not await self.check_ban_permission(ctx):
            return
        await ctx.defer()

        user_ids, invalid = parse_user_ids(ids)
        results = [f"⚠️ Not a user id: {token}" for token in invalid]

        for user_id in user_ids:
            cancelled = await self.cancel_pending_unban(ctx.guild.id, user_id)
            try:
                await ctx.guild.unban(discord.Object(id=user_id), reason=f"Unbanned by {ctx.author}")
            except discord.HTTPException as exc:
                logger.warning("Unban of %s in guild %s failed: %s", user_id, ctx.guild.id, exc)
                suffix = " (pending timed unban cancelled)" if cancelled else ""
                results.append(f"⚠️ Could not unban {user_id}{suffix}")
                continue
            results.append(f"✅ Unbanned {user_id}")

        await ctx.send_followup(truncate_message("\n".join(results) or "No user ids given."))

    @commands.slash_command(name="tempban", description="Ban a user and lift the ban automatically later.")
    async def tempban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(str, "User id or mention.", required=True),  # type: ignore
        value: Option(int, "How long, e.g. 10.", required=True, min_value=1),  # type: ignore
        unit: Option(str, "Unit of the duration.", choices=UNIT_CHOICES, default="m"),  # type: ignore
        reason: Option(str, "Reason for the ban.", default="No reason provided."),  # type: ignore
    ) -> None:
        """Ban a user for ``value`` minutes, hours or days."""
        if not await self.check_ban_permission(ctx):
            return

        try:
            user_id = parse_user_id(user)
            duration_ms = duration_to_milliseconds(value, unit)
        except ValueError as exc:
            await ctx.respond(f"❗ {exc}", ephemeral=True)
            return

        protected = self.protected_reason(ctx, user_id)
        if protected:
            await ctx.respond(f"❗ Cannot ban {user_id}: {protected}.", ephemeral=True)
            return

        await ctx.defer()
        try:
            await ctx.guild.ban(
                discord.Object(id=user_id),
                reason=f"Temporary ban by {ctx.author} for {value}{unit}: {reason}",
            )
        except discord.HTTPException as exc:
            logger.error("Temporary ban of %s in guild %s failed: %s", user_id, ctx.guild.id, exc)
            await ctx.send_followup(f"❌ Could not ban {user_id}.", ephemeral=True)
            return

        try:
            action = await self.scheduler.enqueue(ctx.guild.id, user_id, now_ms() + duration_ms)
        except SchedulerError as exc:
            logger.exception("Could not schedule unban for %s in guild %s: %s", user_id, ctx.guild.id, exc)
            await ctx.send_followup(
                f"⚠️ Banned <@{user_id}> but the automatic unban could not be scheduled.",
            )
            return

        await ctx.send_followup(
            f"✅ Banned <@{user_id}> for {value}{unit}, unban {format_due_at(action.due_at)}."
        )

    @commands.slash_command(name="tempbans", description="List pending automatic unbans in this server.")
    async def tempbans(self, ctx: discord.ApplicationContext) -> None:
        if not await self.check_ban_permission(ctx):
            return

        pending = self.scheduler.list(ctx.guild.id)
        if not pending:
            await ctx.respond("No temporary bans pending.", ephemeral=True)
            return

        lines = [f"<@{action.subject_id}> ({action.subject_id}), unban {format_due_at(action.due_at)}" for action in pending]
        await ctx.respond(truncate_message("\n".join(lines)), ephemeral=True)


def setup(bot: discord.Bot, scheduler: UnbanScheduler) -> None:
    bot.add_cog(ModerationCog(bot, scheduler))
