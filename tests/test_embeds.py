"""Tests for embed builders."""

from types import SimpleNamespace

import discord

from shiggybot.datatypes.plugin_datatypes import PluginRecord, PluginStatus, ScoredMatch
from shiggybot.util.embeds import (
    DEFAULT_COLOR,
    ERROR_COLOR,
    MAX_LISTED_PLUGINS,
    STATUS_COLORS,
    error_embed,
    format_authors,
    install_link_message,
    moderation_embed,
    no_plugins_embed,
    plugin_detail_embed,
    plugin_results_embed,
    status_emoji,
    success_embed,
    usage_embed,
)


def scored(*names):
    return [ScoredMatch(PluginRecord(name=name, description=f"{name} does things"), 9.0) for name in names]


class TestGenericEmbeds:
    def test_error_and_success_prefixes(self):
        error = error_embed("Nope")
        success = success_embed("Done")

        assert error.description == "❌ Nope"
        assert error.color.value == ERROR_COLOR
        assert success.description == "✅ Done"
        assert error.timestamp is not None

    def test_usage_embed(self):
        embed = usage_embed("S", "timeout", "<user> <duration> [reason]", "@user 10m spam")

        assert "`Stimeout <user> <duration> [reason]`" in embed.description
        assert "`Stimeout @user 10m spam`" in embed.description

    def test_usage_embed_without_example(self):
        assert "Example" not in usage_embed("S", "kick", "<user> [reason]").description

    def test_moderation_embed_fields(self):
        moderator = SimpleNamespace(mention="<@1>")

        embed = moderation_embed("timed out", "offender", moderator, "spam", duration_seconds=600)

        assert embed.description == "✅ **offender** has been timed out."
        assert [field.name for field in embed.fields] == ["Moderator", "Duration", "Reason"]
        assert embed.fields[1].value == "10m"

    def test_moderation_embed_without_duration(self):
        embed = moderation_embed("kicked", "offender", SimpleNamespace(mention="<@1>"), "spam")

        assert [field.name for field in embed.fields] == ["Moderator", "Reason"]


class TestPluginEmbeds:
    def test_detail_embed(self):
        record = PluginRecord(
            name="PetPet",
            description="x" * 300,
            authors=("A", "B"),
            status=PluginStatus.WARNING,
            warning_message="Breaks on tablets",
        )

        embed = plugin_detail_embed(record)

        assert embed.title == "Plugin: PetPet"
        assert embed.color.value == STATUS_COLORS[PluginStatus.WARNING]
        assert len(embed.description) == 200
        assert embed.fields[0].value == "A, B"
        assert embed.fields[1].value == "🟡 warning"
        assert embed.fields[2].value == "Breaks on tablets"

    def test_authors_fallback(self):
        assert format_authors(PluginRecord(name="Lonely")) == "N/A"

    def test_results_embed_lists_top_five_with_footer(self):
        embed = plugin_results_embed("pet", scored(*(f"Pet {index}" for index in range(7))))

        assert embed.description == "Found 7 plugins matching **pet**"
        assert len(embed.fields) == MAX_LISTED_PLUGINS
        assert embed.fields[0].name == f"1. {status_emoji(PluginStatus.UNKNOWN)} Pet 0"
        assert "Showing top 5 of 7" in embed.to_dict()["footer"]["text"]

    def test_results_embed_without_footer(self):
        embed = plugin_results_embed("pet", scored("Pet A", "Pet B"))

        assert len(embed.fields) == 2
        assert "footer" not in embed.to_dict()

    def test_no_plugins_embed(self):
        embed = no_plugins_embed("zzz")

        assert "**zzz**" in embed.description
        assert embed.color.value == DEFAULT_COLOR

    def test_install_link_message(self):
        record = PluginRecord(name="PetPet", install_url="https://example.com/petpet.js")

        message = install_link_message(record)

        assert "**PetPet**" in message
        assert "```https://example.com/petpet.js```" in message
        assert isinstance(plugin_detail_embed(record), discord.Embed)
