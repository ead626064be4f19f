"""
commit_preview.py
=================

Commit link previews.

Commit URLs on GitHub, GitLab, Gitea, Forgejo and Bitbucket are detected in
message text. GitHub commits are fetched from the REST API and rendered with
their message, author, a short diff and the changed files; other hosts get a
compact link card.
"""

from __future__ import annotations

import asyncio
import datetime
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping

import aiohttp
import discord

from shiggybot.util.discord_utils import truncate
from shiggybot.util.logger import get_logger

logger = get_logger("commit_preview")

COMMIT_LINK_PATTERN = re.compile(
    r"https?://(?:www\.)?(github\.com|gitlab\.com|gitea\.com|forgejo\.com|bitbucket\.org)"
    r"/([^/\s]+)/([^/\s]+)/commits?/([a-f0-9]{7,40})(?:[?#]\S*)?",
    re.IGNORECASE,
)

GITHUB_HOST = "github.com"
GITHUB_COMMIT_API = "https://api.github.com/repos/{owner}/{repo}/commits/{sha}"
USER_AGENT = "ShiggyBot/1.0"
FETCH_TIMEOUT_SECONDS = 5
MAX_FILES_KEPT = 5
MAX_DIFF_FILES = 2
DIFF_LIMIT = 1000

DEFAULT_COLOR = 0x5865F2
MEDIUM_CHANGE_COLOR = 0xFFAA00
LARGE_CHANGE_COLOR = 0xFF5555

FILE_ICONS = {
    "js": "🟨", "ts": "🔷", "jsx": "⚛️", "tsx": "⚛️", "py": "🐍",
    "java": "☕", "cs": "💠", "cpp": "🔧", "c": "🔧", "go": "🐹",
    "rs": "🦀", "php": "🐘", "rb": "💎", "swift": "🐦", "kt": "⚡",
    "html": "🌐", "css": "🎨", "scss": "🎨", "json": "📋", "yml": "📋",
    "yaml": "📋", "md": "📝", "txt": "📄", "sh": "🐚", "dockerfile": "🐳",
    "lock": "🔒",
}

STATUS_ICONS = {
    "added": "➕",
    "removed": "➖",
    "modified": "📝",
    "renamed": "↔️",
    "copied": "📋",
}


@dataclass(frozen=True, slots=True)
class CommitLink:
    url: str
    host: str
    owner: str
    repo: str
    sha: str

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


@dataclass(frozen=True, slots=True)
class CommitFile:
    filename: str
    status: str = "modified"
    patch: str = ""


@dataclass(frozen=True, slots=True)
class CommitStats:
    additions: int = 0
    deletions: int = 0

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions


@dataclass(slots=True)
class CommitData:
    """Commit details normalized from a host API response."""

    sha: str
    message: str
    author_name: str
    author_date: str | None
    url: str
    author_avatar: str | None = None
    stats: CommitStats | None = None
    files: List[CommitFile] = field(default_factory=list)

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


def find_commit_links(content: str | None, limit: int = 2) -> List[CommitLink]:
    """Return up to ``limit`` distinct commit links found in ``content``."""
    links: List[CommitLink] = []
    seen: set[tuple[str, str, str, str]] = set()
    for match in COMMIT_LINK_PATTERN.finditer(content or ""):
        if len(links) >= limit:
            break
        host, owner, repo, sha = match.groups()
        key = (host.lower(), owner.lower(), repo.lower(), sha.lower())
        if key in seen:
            continue
        seen.add(key)
        links.append(CommitLink(url=match.group(0), host=host.lower(), owner=owner, repo=repo, sha=sha))
    return links


def file_icon(filename: str) -> str:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else filename.lower()
    return FILE_ICONS.get(extension, "📄")


def status_icon(status: str) -> str:
    return STATUS_ICONS.get(status.lower(), "📝")


def commit_color(stats: CommitStats | None) -> int:
    """Pick the embed colour from the size of the change."""
    if stats is None:
        return DEFAULT_COLOR
    if stats.total_changes > 500:
        return LARGE_CHANGE_COLOR
    if stats.total_changes > 100:
        return MEDIUM_CHANGE_COLOR
    return DEFAULT_COLOR


def parse_github_commit(payload: Mapping[str, Any], link: CommitLink) -> CommitData:
    """Normalize a GitHub ``GET /repos/{owner}/{repo}/commits/{sha}`` response."""
    commit = payload.get("commit") or {}
    commit_author = commit.get("author") or {}
    api_author = payload.get("author") or {}

    message = commit.get("message") or payload.get("message") or "No commit message"
    author_name = commit_author.get("name") or api_author.get("login") or "Unknown"

    stats = None
    raw_stats = payload.get("stats")
    if isinstance(raw_stats, dict):
        stats = CommitStats(
            additions=int(raw_stats.get("additions") or 0),
            deletions=int(raw_stats.get("deletions") or 0),
        )

    files = [
        CommitFile(
            filename=entry.get("filename") or "Unknown",
            status=entry.get("status") or "modified",
            patch=entry.get("patch") or "",
        )
        for entry in (payload.get("files") or [])[:MAX_FILES_KEPT]
        if isinstance(entry, dict)
    ]

    return CommitData(
        sha=link.sha,
        message=message,
        author_name=author_name,
        author_date=commit_author.get("date"),
        url=payload.get("html_url") or link.url,
        author_avatar=api_author.get("avatar_url"),
        stats=stats,
        files=files,
    )


async def fetch_commit_data(
    session: aiohttp.ClientSession,
    link: CommitLink,
    github_token: str | None = None,
) -> CommitData | None:
    """Fetch commit details for ``link``; None for unsupported hosts or on failure."""
    if link.host != GITHUB_HOST:
        return None

    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    if github_token:
        headers["Authorization"] = f"Bearer {github_token}"

    url = GITHUB_COMMIT_API.format(owner=link.owner, repo=link.repo, sha=link.sha)
    try:
        async with session.get(url, headers=headers, timeout=aiohttp.ClientTimeout(total=FETCH_TIMEOUT_SECONDS)) as response:
            if response.status != 200:
                logger.warning("[COMMIT PREVIEW] %s returned HTTP %s", url, response.status)
                return None
            payload = await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        logger.error("[COMMIT PREVIEW] Failed to fetch %s: %s", url, exc)
        return None

    if not isinstance(payload, dict):
        return None
    return parse_github_commit(payload, link)


def _parse_timestamp(value: str | None) -> datetime.datetime:
    if value:
        try:
            return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.datetime.now(datetime.timezone.utc)


def build_diff_block(files: List[CommitFile]) -> str | None:
    """Render the patches of the first files that have one as a diff code block."""
    diff_content = ""
    for commit_file in [entry for entry in files if entry.patch][:MAX_DIFF_FILES]:
        diff_content += f"--- a/{commit_file.filename}\n+++ b/{commit_file.filename}\n{commit_file.patch}\n\n"
    if not diff_content:
        return None
    return f"```diff\n{truncate(diff_content, DIFF_LIMIT)}\n```"


def build_commit_embed(commit: CommitData, link: CommitLink) -> discord.Embed:
    title, _, body = commit.message.partition("\n")
    embed = discord.Embed(
        title=truncate(f"📦 {title}", 256),
        url=commit.url,
        color=commit_color(commit.stats),
        timestamp=_parse_timestamp(commit.author_date),
    )
    author_url = f"https://github.com/{commit.author_name}" if link.host == GITHUB_HOST else None
    embed.set_author(name=commit.author_name, icon_url=commit.author_avatar, url=author_url)
    embed.set_footer(text=f"{link.owner}/{link.repo} @ {commit.short_sha} • {link.host}")

    body = body.strip()
    if body:
        embed.description = f"```\n{truncate(body, 500)}\n```"

    patched_count = sum(1 for entry in commit.files if entry.patch)
    diff_block = build_diff_block(commit.files)
    if diff_block:
        embed.add_field(name=f"📊 Code Changes ({patched_count} files with diffs)", value=diff_block, inline=False)
    elif commit.stats is not None:
        embed.add_field(
            name="📊 Changes",
            value=f"```diff\n+{commit.stats.additions} additions\n-{commit.stats.deletions} deletions\n```",
            inline=True,
        )

    if commit.files and (diff_block is None or patched_count < len(commit.files)):
        file_list = "\n".join(
            f"{file_icon(entry.filename)} {status_icon(entry.status)} `{truncate(entry.filename, 30)}`"
            for entry in commit.files
        )
        embed.add_field(name=f"📁 Changed Files ({len(commit.files)})", value=truncate(file_list, 1024), inline=False)

    return embed


def build_fallback_commit_embed(link: CommitLink) -> discord.Embed:
    """Compact card for hosts whose API is not queried."""
    embed = discord.Embed(
        title=f"📦 Commit {link.short_sha}",
        url=link.url,
        description=f"Commit from [{link.owner}/{link.repo}]({link.url})",
        color=DEFAULT_COLOR,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="Repository", value=f"{link.owner}/{link.repo}", inline=True)
    embed.add_field(name="Host", value=link.host, inline=True)
    embed.add_field(name="Commit", value=f"`{link.short_sha}`", inline=True)
    embed.set_footer(text=f"View commit on {link.host}")
    return embed


async def build_commit_previews(
    session: aiohttp.ClientSession,
    links: List[CommitLink],
    github_token: str | None = None,
) -> List[discord.Embed]:
    """Build one embed per link, falling back to the compact card when fetching fails."""
    embeds: List[discord.Embed] = []
    for link in links:
        commit = await fetch_commit_data(session, link, github_token)
        embeds.append(build_commit_embed(commit, link) if commit else build_fallback_commit_embed(link))
    return embeds
