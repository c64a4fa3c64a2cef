from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from banward.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_STORE_PATH = "data/tempbans.json"
DEFAULT_UNBAN_REASON = "Temporary ban expired."


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes the
    scheduler and command settings as typed properties with safe defaults.
    Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    def section(self, name: str) -> Dict[str, Any]:
        value = self._data.get(name, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def schedule_store_path(self) -> Path:
        """Path of the JSON record holding pending unbans.

        Relative paths resolve against the working directory, which
        ``banward.main`` sets to the project base directory.
        """
        value = self.section("scheduler").get("store_path") or DEFAULT_STORE_PATH
        return Path(str(value))

    @property
    def min_delay_ms(self) -> int:
        """Minimum distance between now and a new deadline, in milliseconds.

        Zero (the default) lets deadlines in the past fire immediately.
        """
        value = self.section("scheduler").get("min_delay_ms", 0)
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid scheduler.min_delay_ms %r, using 0", value)
            return 0

    @property
    def unban_reason(self) -> str:
        """Audit log reason used when a temporary ban is lifted automatically."""
        value = self.section("scheduler").get("unban_reason")
        return str(value) if value else DEFAULT_UNBAN_REASON

    @property
    def notification_channel_id(self) -> int | None:
        """Channel that receives an embed whenever a temporary ban is lifted."""
        value = self.section("notifications").get("channel_id")
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid notifications.channel_id %r, ignoring it", value)
            return None

    @property
    def debug_guild_ids(self) -> List[int]:
        """Guilds that get slash commands registered instantly instead of globally."""
        raw = self.section("commands").get("debug_guild_ids") or []
        if not isinstance(raw, list):
            raw = [raw]

        guild_ids: List[int] = []
        for value in raw:
            try:
                guild_ids.append(int(value))
            except (TypeError, ValueError):
                logger.warning("[APP CONFIGURATION] Ignoring invalid debug guild id %r", value)
        return guild_ids


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
