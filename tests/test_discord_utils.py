from types import SimpleNamespace

import pytest

from banward.util import discord_utils
from banward.util.discord_utils import (
    duration_to_milliseconds,
    format_due_at,
    has_permissions,
    parse_user_id,
    parse_user_ids,
)


@pytest.mark.parametrize("raw", ["123", "<@123>", "<@!123>", "  123  "])
def test_parse_user_id_accepts_ids_and_mentions(raw):
    assert parse_user_id(raw) == 123


@pytest.mark.parametrize("raw", ["", "abc", "<#123>", "12a"])
def test_parse_user_id_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_user_id(raw)


def test_parse_user_ids_deduplicates_and_collects_invalid():
    user_ids, invalid = parse_user_ids("1 <@2> nope 1   <@!3>")

    assert user_ids == [1, 2, 3]
    assert invalid == ["nope"]


@pytest.mark.parametrize(
    "value,unit,expected",
    [(10, "m", 600_000), (2, "h", 7_200_000), (1, "D", 86_400_000)],
)
def test_duration_to_milliseconds(value, unit, expected):
    assert duration_to_milliseconds(value, unit) == expected


@pytest.mark.parametrize("value,unit", [(5, "s"), (0, "m"), (-1, "h")])
def test_duration_to_milliseconds_rejects_bad_input(value, unit):
    with pytest.raises(ValueError):
        duration_to_milliseconds(value, unit)


def test_format_due_at_uses_relative_timestamp():
    assert format_due_at(1_700_000_000_999) == "<t:1700000000:R>"


def test_has_permissions_requires_member(monkeypatch):
    class FakeMember:
        def __init__(self, **perms):
            self.guild_permissions = SimpleNamespace(**perms)

    monkeypatch.setattr(discord_utils.discord, "Member", FakeMember)

    assert has_permissions(SimpleNamespace(author=FakeMember(ban_members=True)), ban_members=True)
    assert not has_permissions(SimpleNamespace(author=FakeMember(ban_members=False)), ban_members=True)
    assert not has_permissions(SimpleNamespace(author=object()), ban_members=True)
