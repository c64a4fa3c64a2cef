from pathlib import Path

import pytest

from banward.configuration.app_configuration import (
    DEFAULT_STORE_PATH,
    DEFAULT_UNBAN_REASON,
    AppConfig,
)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_path.write_text(
        """
scheduler:
  store_path: state/bans.json
  min_delay_ms: 1500
  unban_reason: Time served.
notifications:
  channel_id: "1234"
commands:
  debug_guild_ids: [1, "2"]
""",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.schedule_store_path == Path("state/bans.json")
    assert config.min_delay_ms == 1500
    assert config.unban_reason == "Time served."
    assert config.notification_channel_id == 1234
    assert config.debug_guild_ids == [1, 2]


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.reload() == {}
    assert config.schedule_store_path == Path(DEFAULT_STORE_PATH)
    assert config.min_delay_ms == 0
    assert config.unban_reason == DEFAULT_UNBAN_REASON
    assert config.notification_channel_id is None
    assert config.debug_guild_ids == []


def test_app_config_invalid_values_fall_back(config_path: Path) -> None:
    config_path.write_text(
        """
scheduler:
  min_delay_ms: soon
notifications:
  channel_id: general
commands:
  debug_guild_ids: [abc, 7]
""",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.min_delay_ms == 0
    assert config.notification_channel_id is None
    assert config.debug_guild_ids == [7]


def test_app_config_negative_delay_is_clamped(config_path: Path) -> None:
    config_path.write_text("scheduler:\n  min_delay_ms: -10\n", encoding="utf-8")

    assert AppConfig(config_path).min_delay_ms == 0


@pytest.mark.parametrize("content", ["- just\n- a list\n", "scheduler: [1, 2]\n", "key: [unclosed\n"])
def test_app_config_tolerates_unexpected_shapes(config_path: Path, content: str) -> None:
    config_path.write_text(content, encoding="utf-8")

    config = AppConfig(config_path)

    assert config.schedule_store_path == Path(DEFAULT_STORE_PATH)
    assert config.section("scheduler") == {}


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("scheduler:\n  min_delay_ms: 5\n", encoding="utf-8")
    config = AppConfig(config_path)

    config_path.write_text("scheduler:\n  min_delay_ms: 50\n", encoding="utf-8")
    config.reload()

    assert config.min_delay_ms == 50
