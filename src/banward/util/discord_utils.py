"""
discord_utils.py
================

Stateless Discord helpers used by the moderation commands: permission checks,
parsing of id/mention lists, and duration conversion for temporary bans.
"""

import re
from typing import List, Tuple

import discord


# ==========================================
# Durations
# ==========================================

UNIT_MILLISECONDS = {
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}

UNIT_CHOICES = [
    discord.OptionChoice(name="Minutes", value="m"),
    discord.OptionChoice(name="Hours", value="h"),
    discord.OptionChoice(name="Days", value="d"),
]

_MENTION_CHARS = re.compile(r"[<@!>]")


def duration_to_milliseconds(value: int, unit: str) -> int:
    """
    Convert a ``value`` + ``unit`` pair (``m``, ``h`` or ``d``) to milliseconds.

    Raises:
        ValueError: If the unit is unknown or the value is not positive.
    """
    multiplier = UNIT_MILLISECONDS.get(unit.strip().lower())
    if multiplier is None:
        raise ValueError(f"Unknown duration unit {unit!r}; use m, h or d")
    if value <= 0:
        raise ValueError("Duration must be a positive number")
    return value * multiplier


def format_due_at(due_at_ms: int) -> str:
    """Render an epoch-millisecond deadline as a Discord relative timestamp."""
    return f"<t:{due_at_ms // 1000}:R>"


# ==========================================
# Identifiers
# ==========================================

def parse_user_id(raw: str) -> int:
    """
    Turn a raw id or mention (``123``, ``<@123>``, ``<@!123>``) into an int.

    Raises:
        ValueError: If what remains is not a snowflake.
    """
    cleaned = _MENTION_CHARS.sub("", raw.strip())
    if not cleaned.isdigit():
        raise ValueError(f"{raw!r} is not a user id or mention")
    return int(cleaned)


def parse_user_ids(raw: str) -> Tuple[List[int], List[str]]:
    """
    Split a whitespace-separated list of ids/mentions.

    Returns:
        Tuple[List[int], List[str]]: Parsed ids (duplicates dropped, order kept)
        and the tokens that could not be parsed.
    """
    user_ids: List[int] = []
    invalid: List[str] = []
    for token in raw.split():
        try:
            user_id = parse_user_id(token)
        except ValueError:
            invalid.append(token)
            continue
        if user_id not in user_ids:
            user_ids.append(user_id)
    return user_ids, invalid


# ==========================================
# Permissions
# ==========================================

def has_permissions(application_context: discord.ApplicationContext, **required_permissions) -> bool:
    """
    Check if the command issuer has all specified permissions in the guild.

    Args:
        application_context (discord.ApplicationContext): The command context.
        **required_permissions: Permission flags to check.

    Returns:
        bool: True if all permissions are present, False otherwise.
    """
    if not isinstance(application_context.author, discord.Member):
        return False
    return all(getattr(application_context.author.guild_permissions, permission_name, False) for permission_name in required_permissions)
