"""Buttons attached to plugin search results.

Install buttons carry ``plg_<hash>`` custom IDs and have no callback of their
own: :class:`shiggybot.bot.cogs.plugin_cmds.PluginCommandsCog` answers them
from its ``on_interaction`` listener, so they keep working after a restart.
"""

from __future__ import annotations

from typing import Iterable

import discord

from shiggybot.datatypes.plugin_datatypes import PluginRecord

INSTALL_BUTTON_PREFIX = "plg_"
VIEW_TIMEOUT_SECONDS = 600
MAX_LABEL_LENGTH = 80


def install_button_id(record: PluginRecord) -> str:
    return f"{INSTALL_BUTTON_PREFIX}{record.short_hash}"


def parse_install_button_id(custom_id: str | None) -> str | None:
    """Return the plugin hash encoded in an install button ID, or None."""
    if not custom_id or not custom_id.startswith(INSTALL_BUTTON_PREFIX):
        return None
    return custom_id[len(INSTALL_BUTTON_PREFIX):] or None


class PluginLinksView(discord.ui.View):
    """One row of buttons per plugin: install link (if any) and source code (if any)."""

    def __init__(self, records: Iterable[PluginRecord], *, short_labels: bool = False):
        super().__init__(timeout=VIEW_TIMEOUT_SECONDS)
        for row, record in enumerate(records):
            if row > 4:
                break
            if record.install_url:
                label = record.name[:MAX_LABEL_LENGTH] if short_labels else "Copy Install Link"
                self.add_item(discord.ui.Button(
                    label=label,
                    style=discord.ButtonStyle.primary,
                    custom_id=install_button_id(record),
                    row=row,
                ))
            if record.source_url:
                self.add_item(discord.ui.Button(
                    label="Source Code",
                    style=discord.ButtonStyle.link,
                    url=record.source_url,
                    row=row,
                ))

    @property
    def has_buttons(self) -> bool:
        return len(self.children) > 0
