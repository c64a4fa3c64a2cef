from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from banward.bot.unban_executor import UnbanExecutor
from banward.datatypes.schedule_datatypes import ActionKind
from banward.scheduler.errors import ExecutionError


def _http_error(cls: type[discord.HTTPException], status: int) -> discord.HTTPException:
    return cls(SimpleNamespace(status=status, reason="error"), "error")


def _bot(guild=None) -> MagicMock:
    bot = MagicMock()
    bot.get_guild.return_value = guild
    bot.fetch_guild = AsyncMock()
    return bot


def _guild(guild_id: int = 10) -> MagicMock:
    guild = MagicMock()
    guild.id = guild_id
    guild.unban = AsyncMock()
    guild.get_channel.return_value = None
    return guild


@pytest.mark.asyncio
async def test_unbans_user_in_cached_guild() -> None:
    guild = _guild()
    executor = UnbanExecutor(_bot(guild), reason="Timer expired")

    await executor(10, 55, ActionKind.LIFT_BAN)

    guild.unban.assert_awaited_once()
    (target,), kwargs = guild.unban.await_args
    assert target.id == 55
    assert kwargs == {"reason": "Timer expired"}


@pytest.mark.asyncio
async def test_fetches_guild_when_not_cached() -> None:
    guild = _guild()
    bot = _bot(None)
    bot.fetch_guild.return_value = guild

    await UnbanExecutor(bot)(10, 55, ActionKind.LIFT_BAN)

    bot.fetch_guild.assert_awaited_once_with(10)
    guild.unban.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("error_cls,status", [(discord.NotFound, 404), (discord.Forbidden, 403)])
async def test_unreachable_guild_raises_execution_error(error_cls, status) -> None:
    bot = _bot(None)
    bot.fetch_guild.side_effect = _http_error(error_cls, status)

    with pytest.raises(ExecutionError):
        await UnbanExecutor(bot)(10, 55, ActionKind.LIFT_BAN)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error_cls,status",
    [(discord.NotFound, 404), (discord.Forbidden, 403), (discord.HTTPException, 500)],
)
async def test_discord_failures_become_execution_errors(error_cls, status) -> None:
    guild = _guild()
    guild.unban.side_effect = _http_error(error_cls, status)

    with pytest.raises(ExecutionError):
        await UnbanExecutor(_bot(guild))(10, 55, ActionKind.LIFT_BAN)


@pytest.mark.asyncio
async def test_unsupported_kind_is_rejected() -> None:
    guild = _guild()

    with pytest.raises(ExecutionError):
        await UnbanExecutor(_bot(guild))(10, 55, "explode")  # type: ignore[arg-type]

    guild.unban.assert_not_awaited()


@pytest.mark.asyncio
async def test_sends_notification_embed_to_configured_channel() -> None:
    channel = MagicMock(spec=discord.TextChannel)
    channel.send = AsyncMock()
    guild = _guild()
    guild.get_channel.return_value = channel

    await UnbanExecutor(_bot(guild), notification_channel_id=777)(10, 55, ActionKind.LIFT_BAN)

    guild.get_channel.assert_called_once_with(777)
    embed = channel.send.await_args.kwargs["embed"]
    assert "55" in embed.description


@pytest.mark.asyncio
async def test_failed_notification_does_not_raise() -> None:
    channel = MagicMock(spec=discord.TextChannel)
    channel.send = AsyncMock(side_effect=_http_error(discord.Forbidden, 403))
    guild = _guild()
    guild.get_channel.return_value = channel

    await UnbanExecutor(_bot(guild), notification_channel_id=777)(10, 55, ActionKind.LIFT_BAN)

    guild.unban.assert_awaited_once()
    channel.send.assert_awaited_once()


@pytest.mark.asyncio
async def test_missing_notification_channel_is_skipped() -> None:
    guild = _guild()

    await UnbanExecutor(_bot(guild), notification_channel_id=777)(10, 55, ActionKind.LIFT_BAN)

    guild.unban.assert_awaited_once()
