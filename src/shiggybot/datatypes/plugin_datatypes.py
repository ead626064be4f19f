"""
Data types for the community plugin catalog.

The catalog is published as a static JSON array by the plugin list project;
each entry is normalized into a :class:`PluginRecord` so the search and the
embeds never touch raw dictionaries.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class PluginStatus(Enum):
    """Health status reported by the plugin catalog."""

    WORKING = "working"
    WARNING = "warning"
    BROKEN = "broken"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "PluginStatus":
        """Return the status matching ``value`` (case-insensitive), or UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


def plugin_hash(name: str) -> str:
    """Return the 16-character hex digest used to reference a plugin from a button."""
    return hashlib.md5(name.encode("utf-8"), usedforsecurity=False).hexdigest()[:16]


def _optional_text(value: Any) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None


@dataclass(frozen=True, slots=True)
class PluginRecord:
    """One entry of the plugin catalog.

    Attributes:
        name: Display name, also the key the search scores against.
        description: Free-text summary.
        authors: Author display names.
        status: Health status of the plugin.
        source_url: Link to the plugin source, if published.
        install_url: Link users paste into the client to install the plugin.
        warning_message: Extra notice shown for plugins with known issues.
    """

    name: str
    description: str = ""
    authors: tuple[str, ...] = ()
    status: PluginStatus = PluginStatus.UNKNOWN
    source_url: str | None = None
    install_url: str | None = None
    warning_message: str | None = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PluginRecord":
        """Build a record from one catalog JSON object.

        Raises:
            ValueError: If the entry carries no usable name.
        """
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValueError("plugin entry has no name")

        raw_authors = payload.get("authors") or []
        if isinstance(raw_authors, str):
            raw_authors = [raw_authors]

        return cls(
            name=name,
            description=str(payload.get("description") or ""),
            authors=tuple(str(author) for author in raw_authors if author),
            status=PluginStatus.parse(payload.get("status")),
            source_url=_optional_text(payload.get("sourceUrl")),
            install_url=_optional_text(payload.get("installUrl")),
            warning_message=_optional_text(payload.get("warningMessage")),
        )

    @property
    def short_hash(self) -> str:
        return plugin_hash(self.name)


@dataclass(frozen=True, slots=True)
class ScoredMatch:
    """A catalog record paired with its similarity score for one query."""

    record: PluginRecord
    score: float
