"""Tests for commit link previews."""

import pytest

from shiggybot.previews.commit_preview import (
    DEFAULT_COLOR,
    LARGE_CHANGE_COLOR,
    MEDIUM_CHANGE_COLOR,
    CommitData,
    CommitFile,
    CommitLink,
    CommitStats,
    build_commit_embed,
    build_commit_previews,
    build_diff_block,
    build_fallback_commit_embed,
    commit_color,
    fetch_commit_data,
    file_icon,
    find_commit_links,
    parse_github_commit,
    status_icon,
)

LINK = CommitLink(
    url="https://github.com/kmmiio99o/ShiggyCord/commit/0123456789abcdef",
    host="github.com",
    owner="kmmiio99o",
    repo="ShiggyCord",
    sha="0123456789abcdef",
)

GITHUB_PAYLOAD = {
    "html_url": "https://github.com/kmmiio99o/ShiggyCord/commit/0123456789abcdef",
    "commit": {
        "message": "Fix plugin loader\n\nHandles missing manifests.",
        "author": {"name": "shiggy", "date": "2025-01-02T03:04:05Z"},
    },
    "author": {"login": "shiggy-gh", "avatar_url": "https://avatars.example/shiggy.png"},
    "stats": {"additions": 120, "deletions": 30},
    "files": [
        {"filename": "src/loader.ts", "status": "modified", "patch": "@@ -1 +1 @@\n-old\n+new"},
        {"filename": "package.json", "status": "modified"},
    ],
}


class FakeResponse:
    def __init__(self, status=200, payload=None):
        self.status = status
        self._payload = payload

    async def json(self):
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


class TestFindCommitLinks:
    def test_detects_supported_hosts(self):
        content = (
            "github https://github.com/o/r/commit/abcdef1234 and "
            "gitea https://gitea.com/o/r/commit/1234567#diff"
        )

        links = find_commit_links(content)

        assert [(link.host, link.sha) for link in links] == [("github.com", "abcdef1234"), ("gitea.com", "1234567")]

    def test_deduplicates_case_insensitively_and_limits(self):
        content = " ".join([
            "https://github.com/o/r/commit/ABCDEF1",
            "https://github.com/O/R/commit/abcdef1",
            "https://github.com/o/r/commits/1111111",
            "https://github.com/o/r/commit/2222222",
        ])

        links = find_commit_links(content)

        assert [link.sha for link in links] == ["ABCDEF1", "1111111"]

    def test_ignores_short_shas(self):
        assert find_commit_links("https://github.com/o/r/commit/abc12") == []


class TestHelpers:
    def test_commit_color_by_change_size(self):
        assert commit_color(None) == DEFAULT_COLOR
        assert commit_color(CommitStats(50, 50)) == DEFAULT_COLOR
        assert commit_color(CommitStats(100, 1)) == MEDIUM_CHANGE_COLOR
        assert commit_color(CommitStats(400, 101)) == LARGE_CHANGE_COLOR

    def test_icons(self):
        assert file_icon("main.py") == "🐍"
        assert file_icon("Dockerfile") == "🐳"
        assert file_icon("notes.unknown") == "📄"
        assert status_icon("Added") == "➕"
        assert status_icon("weird") == "📝"

    def test_diff_block_uses_patched_files_only(self):
        files = [CommitFile("a.py"), CommitFile("b.py", patch="+x"), CommitFile("c.py", patch="-y"), CommitFile("d.py", patch="+z")]

        block = build_diff_block(files)

        assert block.startswith("```diff\n--- a/b.py")
        assert "c.py" in block
        assert "d.py" not in block
        assert build_diff_block([CommitFile("a.py")]) is None


def test_parse_github_commit():
    commit = parse_github_commit(GITHUB_PAYLOAD, LINK)

    assert commit.short_sha == "0123456"
    assert commit.author_name == "shiggy"
    assert commit.author_avatar == "https://avatars.example/shiggy.png"
    assert commit.stats.total_changes == 150
    assert [entry.filename for entry in commit.files] == ["src/loader.ts", "package.json"]
    assert commit.files[1].patch == ""


def test_parse_github_commit_defaults():
    commit = parse_github_commit({}, LINK)

    assert commit.message == "No commit message"
    assert commit.author_name == "Unknown"
    assert commit.url == LINK.url
    assert commit.stats is None
    assert commit.files == []


class TestCommitEmbeds:
    def test_full_embed(self):
        embed = build_commit_embed(parse_github_commit(GITHUB_PAYLOAD, LINK), LINK)

        assert embed.title == "📦 Fix plugin loader"
        assert embed.description == "```\nHandles missing manifests.\n```"
        assert embed.color.value == MEDIUM_CHANGE_COLOR
        assert embed.author.name == "shiggy"
        assert [field.name for field in embed.fields] == [
            "📊 Code Changes (1 files with diffs)",
            "📁 Changed Files (2)",
        ]
        assert embed.to_dict()["footer"]["text"] == "kmmiio99o/ShiggyCord @ 0123456 • github.com"

    def test_stats_field_without_patches(self):
        commit = CommitData(
            sha="abcdef1",
            message="Bump deps",
            author_name="bot",
            author_date=None,
            url=LINK.url,
            stats=CommitStats(3, 1),
        )

        embed = build_commit_embed(commit, LINK)

        assert embed.description is None
        assert embed.fields[0].name == "📊 Changes"
        assert "+3 additions" in embed.fields[0].value

    def test_fallback_embed(self):
        link = CommitLink("https://gitea.com/o/r/commit/1234567abc", "gitea.com", "o", "r", "1234567abc")

        embed = build_fallback_commit_embed(link)

        assert embed.title == "📦 Commit 1234567"
        assert [field.value for field in embed.fields] == ["o/r", "gitea.com", "`1234567`"]


class TestFetchCommitData:
    @pytest.mark.asyncio
    async def test_github_commit_with_token(self):
        session = FakeSession(FakeResponse(payload=GITHUB_PAYLOAD))

        commit = await fetch_commit_data(session, LINK, github_token="ghp_example")

        assert commit.author_name == "shiggy"
        url, kwargs = session.calls[0]
        assert url == "https://api.github.com/repos/kmmiio99o/ShiggyCord/commits/0123456789abcdef"
        assert kwargs["headers"]["Authorization"] == "Bearer ghp_example"

    @pytest.mark.asyncio
    async def test_http_error_returns_none(self):
        session = FakeSession(FakeResponse(status=404))

        assert await fetch_commit_data(session, LINK) is None

    @pytest.mark.asyncio
    async def test_other_hosts_are_not_fetched(self):
        link = CommitLink("https://gitea.com/o/r/commit/1234567", "gitea.com", "o", "r", "1234567")
        session = FakeSession(FakeResponse(payload=GITHUB_PAYLOAD))

        embeds = await build_commit_previews(session, [link])

        assert session.calls == []
        assert embeds[0].title == "📦 Commit 1234567"
