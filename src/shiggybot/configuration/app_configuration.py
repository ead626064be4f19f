from __future__ import annotations

import fcntl
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

from shiggybot.plugins.plugin_search import DEFAULT_SCORE_THRESHOLD, ScoringWeights
from shiggybot.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_PREFIX = "S"
DEFAULT_PLUGIN_LIST_URL = "https://raw.githubusercontent.com/Purple-EyeZ/Plugins-List/refs/heads/main/src/plugins-data.json"
PRESENCE_STATUSES = ("online", "idle", "dnd", "invisible")


@dataclass(frozen=True, slots=True)
class StickyNote:
    """A canned answer posted by the ``note`` command."""

    title: str
    content: str

    @classmethod
    def from_value(cls, value: Any) -> "StickyNote | None":
        if not isinstance(value, dict):
            return None
        content = value.get("content", "")
        if isinstance(content, (list, tuple)):
            content = "\n".join(str(line) for line in content)
        title = str(value.get("title") or "").strip()
        if not title or not content:
            return None
        return cls(title=title, content=str(content))


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key, {})
    return value if isinstance(value, dict) else {}


def _optional_int(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        logger.warning("[APP CONFIGURATION] Ignoring non-numeric ID %r", value)
        return None


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for every setting the bot reads. Secrets (the bot token
    and the optional GitHub token) are never stored in the YAML file; they
    come from the environment, populated from ``.env`` by python-dotenv.
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
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns an empty dict when the file is missing or unreadable.
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # Bot identity
    # --------------------------
    @property
    def prefix(self) -> str:
        """Return the prefix for text commands (matched case-insensitively)."""
        value = str(self._data.get("prefix") or "").strip()
        return value or DEFAULT_PREFIX

    @property
    def dev_guild_id(self) -> int | None:
        """Guild that receives slash commands instantly during development."""
        return _optional_int(self._data.get("dev_guild_id"))

    @property
    def welcome_role_id(self) -> int | None:
        """Role granted to members when they join, or None to disable auto-role."""
        return _optional_int(self._data.get("welcome_role_id"))

    @property
    def presence_status(self) -> str:
        presence = _section(self._data, "presence")
        status = str(presence.get("status") or "idle").lower()
        if status not in PRESENCE_STATUSES:
            logger.warning("[APP CONFIGURATION] Unknown presence status %r; using 'idle'.", status)
            return "idle"
        return status

    @property
    def presence_activity(self) -> str:
        presence = _section(self._data, "presence")
        return str(presence.get("activity") or "")

    # --------------------------
    # Plugin search
    # --------------------------
    @property
    def plugin_list_url(self) -> str:
        return str(_section(self._data, "plugin_search").get("feed_url") or DEFAULT_PLUGIN_LIST_URL)

    @property
    def plugin_score_threshold(self) -> float:
        value = _section(self._data, "plugin_search").get("score_threshold", DEFAULT_SCORE_THRESHOLD)
        try:
            return float(value)
        except (TypeError, ValueError):
            return DEFAULT_SCORE_THRESHOLD

    @property
    def plugin_search_weights(self) -> ScoringWeights:
        """Return the configured scorer weights, falling back to the defaults.

        Weights that would break tier ordering are rejected with an error log.
        """
        weights = _section(self._data, "plugin_search").get("weights")
        try:
            return ScoringWeights.from_mapping(weights if isinstance(weights, dict) else None)
        except (TypeError, ValueError) as exc:
            logger.error("[APP CONFIGURATION] Invalid plugin_search.weights (%s); using defaults.", exc)
            return ScoringWeights()

    # --------------------------
    # Link previews
    # --------------------------
    @property
    def max_commit_previews(self) -> int:
        return int(_section(self._data, "previews").get("max_commit_previews", 2))

    @property
    def max_code_previews(self) -> int:
        return int(_section(self._data, "previews").get("max_code_previews", 3))

    @property
    def code_fetch_limit_per_hour(self) -> int:
        return int(_section(self._data, "previews").get("requests_per_hour", 60))

    # --------------------------
    # Sticky notes
    # --------------------------
    @property
    def sticky_notes(self) -> Dict[str, StickyNote]:
        """Return the configured notes keyed by lower-case topic."""
        raw_notes = _section(self._data, "sticky_notes")
        notes: Dict[str, StickyNote] = {}
        for topic, value in raw_notes.items():
            note = StickyNote.from_value(value)
            if note is None:
                logger.warning("[APP CONFIGURATION] Skipping malformed sticky note %r", topic)
                continue
            notes[str(topic).lower()] = note
        return notes

    # --------------------------
    # Secrets
    # --------------------------
    @property
    def github_token(self) -> str | None:
        return os.getenv("GITHUB_TOKEN") or None


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
