"""
code_preview.py
===============

Code snippet previews for repository file links.

A link such as ``https://github.com/owner/repo/blob/main/src/app.py#L10-L20``
is turned into an embed holding those lines (at most 20), unindented and
syntax-highlighted by file type. Raw files are fetched through a shared
:class:`~shiggybot.previews.rate_limiter.RateLimiter`.
"""

from __future__ import annotations

import asyncio
import datetime
import re
from dataclasses import dataclass
from typing import Callable, Dict, List

import aiohttp
import discord

from shiggybot.previews.rate_limiter import RateLimiter
from shiggybot.util.discord_utils import truncate
from shiggybot.util.logger import get_logger

logger = get_logger("code_preview")

CODE_LINK_PATTERN = re.compile(
    r"https?://(?:www\.)?(raw\.githubusercontent\.com|github\.com|gitlab\.com|gitea\.com|forgejo\.com|bitbucket\.org)"
    r"/([^/\s]+)/([^/\s]+)/([^#\s]+)(?:#L(\d+)(?:-L(\d+))?)?",
    re.IGNORECASE,
)

USER_AGENT = "ShiggyBot/1.1"
FETCH_TIMEOUT_SECONDS = 15
MAX_FILE_BYTES = 1024 * 1024
MAX_SNIPPET_LINES = 20
EMBED_COLOR = 0x5865F2
BRANCH_SEPARATORS = ("blob", "raw", "src")
REF_QUALIFIERS = ("branch", "tag", "commit")
DEFAULT_REF = "HEAD"

LANGUAGE_MAP: Dict[str, str] = {
    # Web
    "js": "javascript", "jsx": "javascript", "mjs": "javascript", "cjs": "javascript",
    "ts": "typescript", "tsx": "typescript", "mts": "typescript", "cts": "typescript",
    "html": "html", "htm": "html", "css": "css", "scss": "scss", "sass": "sass",
    "less": "less", "vue": "vue", "svelte": "svelte",
    # Backend
    "py": "python", "rb": "ruby", "java": "java", "cs": "csharp", "cpp": "cpp",
    "c": "c", "go": "go", "rs": "rust", "php": "php", "swift": "swift",
    "kt": "kotlin", "scala": "scala",
    # Data
    "json": "json", "yaml": "yaml", "yml": "yaml", "xml": "xml", "toml": "toml", "sql": "sql",
    # Config and scripts
    "md": "markdown", "txt": "text", "sh": "bash", "bash": "bash", "zsh": "bash",
    "ps1": "powershell", "bat": "batch", "dockerfile": "dockerfile", "conf": "nginx",
    # Other
    "dart": "dart", "lua": "lua", "perl": "perl", "r": "r", "hs": "haskell",
}

FILENAME_MAP: Dict[str, str] = {
    "dockerfile": "dockerfile",
    "makefile": "makefile",
    "cmakelists.txt": "cmake",
    "rakefile": "ruby",
    "gemfile": "ruby",
    "procfile": "text",
    "vagrantfile": "ruby",
}

RAW_URL_BUILDERS: Dict[str, Callable[[str, str, str, str], str]] = {
    "github.com": lambda owner, repo, ref, path: f"https://raw.githubusercontent.com/{owner}/{repo}/{ref}/{path}",
    "raw.githubusercontent.com": lambda owner, repo, ref, path: f"https://raw.githubusercontent.com/{owner}/{repo}/{ref}/{path}",
    "gitlab.com": lambda owner, repo, ref, path: f"https://gitlab.com/{owner}/{repo}/-/raw/{ref}/{path}",
    "gitea.com": lambda owner, repo, ref, path: f"https://gitea.com/{owner}/{repo}/raw/{ref}/{path}",
    "forgejo.com": lambda owner, repo, ref, path: f"https://forgejo.com/{owner}/{repo}/raw/{ref}/{path}",
    "bitbucket.org": lambda owner, repo, ref, path: f"https://bitbucket.org/{owner}/{repo}/raw/{ref}/{path}",
}


@dataclass(frozen=True, slots=True)
class CodeLink:
    """A repository file link with its requested line range."""

    url: str
    host: str
    owner: str
    repo: str
    ref: str
    path: str
    start_line: int
    end_line: int

    @property
    def raw_url(self) -> str | None:
        builder = RAW_URL_BUILDERS.get(self.host)
        return builder(self.owner, self.repo, self.ref, self.path) if builder else None


@dataclass(frozen=True, slots=True)
class Snippet:
    text: str
    start_line: int
    end_line: int

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


def split_ref_and_path(path_segment: str, bare_ref: bool = False) -> tuple[str, str] | None:
    """Split ``blob/<ref>/<path>`` (or ``raw``, ``src``, ``-/raw``) into ref and file path.

    With ``bare_ref`` the first segment is the ref when no separator is
    present, as in ``raw.githubusercontent.com/<owner>/<repo>/<ref>/<path>``.
    Returns None when the segment does not name a file.
    """
    parts = [part for part in path_segment.split("/") if part]
    if parts and parts[0] == "-":
        parts = parts[1:]
    for index, part in enumerate(parts):
        if part not in BRANCH_SEPARATORS:
            continue
        # Gitea and Forgejo spell refs as src/branch/<ref>/...
        if len(parts) > index + 3 and parts[index + 1] in REF_QUALIFIERS:
            return parts[index + 2], "/".join(parts[index + 3:])
        if len(parts) > index + 2:
            return parts[index + 1], "/".join(parts[index + 2:])
    if bare_ref and len(parts) >= 2:
        return parts[0], "/".join(parts[1:])
    return None


def parse_code_link(match: re.Match) -> CodeLink | None:
    """Build a :class:`CodeLink` from a :data:`CODE_LINK_PATTERN` match, or None to skip it."""
    url = match.group(0)
    host, owner, repo, path_segment, start, end = match.groups()
    host = host.lower()
    if "/releases/download/" in url:
        return None
    split = split_ref_and_path(path_segment, bare_ref=host == "raw.githubusercontent.com")
    if split is None:
        return None
    ref, path = split
    start_line = int(start) if start else 1
    end_line = int(end) if end else start_line + MAX_SNIPPET_LINES - 1
    return CodeLink(
        url=url,
        host=host,
        owner=owner,
        repo=repo,
        ref=ref or DEFAULT_REF,
        path=path,
        start_line=start_line,
        end_line=max(start_line, end_line),
    )


def find_code_links(content: str | None, limit: int = 3) -> List[CodeLink]:
    """Return up to ``limit`` distinct previewable file links found in ``content``."""
    links: List[CodeLink] = []
    seen: set[str] = set()
    for match in CODE_LINK_PATTERN.finditer(content or ""):
        if len(links) >= limit:
            break
        if match.group(0) in seen:
            continue
        seen.add(match.group(0))
        link = parse_code_link(match)
        if link is not None:
            links.append(link)
    return links


def detect_language(path: str) -> str:
    """Return the code block language for ``path``, ``"text"`` when unknown."""
    base_name = path.rsplit("/", 1)[-1].lower()
    if base_name in FILENAME_MAP:
        return FILENAME_MAP[base_name]
    extension = base_name.rsplit(".", 1)[-1] if "." in base_name else ""
    return LANGUAGE_MAP.get(extension, "text")


def extract_snippet(code: str, start_line: int, end_line: int) -> Snippet:
    """Cut lines ``start_line``..``end_line`` (1-based) out of ``code``.

    The start is clamped into the file and at most :data:`MAX_SNIPPET_LINES`
    lines are returned.
    """
    lines = code.split("\n")
    actual_start = max(1, min(start_line, len(lines)))
    actual_end = max(actual_start, min(actual_start + MAX_SNIPPET_LINES - 1, end_line, len(lines)))
    return Snippet(
        text="\n".join(lines[actual_start - 1:actual_end]),
        start_line=actual_start,
        end_line=actual_end,
    )


def unindent(text: str) -> str:
    """Remove the indentation shared by every non-blank line (tabs count as 4 spaces)."""
    text = text.replace("\t", "    ")
    indents = [len(line) - len(line.lstrip(" ")) for line in text.split("\n") if line.strip()]
    common = min(indents, default=0)
    if not common:
        return text
    return "\n".join(line[common:] if line[:common].isspace() else line.lstrip(" ") for line in text.split("\n"))


async def fetch_code(session: aiohttp.ClientSession, url: str, rate_limiter: RateLimiter) -> str | None:
    """Download a raw file, or None when rate limited, too large, missing or unreachable."""
    if not rate_limiter.try_acquire():
        logger.info("[CODE PREVIEW] Skipping %s: rate limit reached", url)
        return None

    headers = {"User-Agent": USER_AGENT, "Accept": "text/plain"}
    try:
        async with session.get(url, headers=headers, timeout=aiohttp.ClientTimeout(total=FETCH_TIMEOUT_SECONDS)) as response:
            if response.status == 429:
                reset = response.headers.get("x-ratelimit-reset")
                if reset and reset.isdigit():
                    rate_limiter.block_until(int(reset))
                return None
            if response.status != 200:
                logger.debug("[CODE PREVIEW] %s returned HTTP %s", url, response.status)
                return None
            if (response.content_length or 0) > MAX_FILE_BYTES:
                logger.debug("[CODE PREVIEW] %s is larger than %d bytes", url, MAX_FILE_BYTES)
                return None
            return await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as exc:
        logger.warning("[CODE PREVIEW] Failed to fetch %s: %s", url, exc)
        return None


def build_code_embed(link: CodeLink, snippet: Snippet) -> discord.Embed:
    language = detect_language(link.path)
    file_name = link.path.rsplit("/", 1)[-1]
    line_range = f"L{link.start_line}" if link.start_line == link.end_line else f"L{link.start_line}-L{link.end_line}"

    code = truncate(unindent(snippet.text), 4000)
    embed = discord.Embed(
        title=truncate(f"📄 {file_name} [{line_range}]", 256),
        url=link.url,
        description=f"```{language}\n{code}\n```",
        color=EMBED_COLOR,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="Repository", value=f"[{link.owner}/{link.repo}]({link.url.split('#')[0]})", inline=True)
    embed.add_field(name="Branch/Tag", value=f"`{link.ref}`", inline=True)
    embed.add_field(name="Path", value=f"`{truncate(link.path, 100)}`", inline=False)
    embed.set_footer(text=f"{link.host} • {language.upper()} • {snippet.line_count} lines")
    return embed


async def build_code_previews(
    session: aiohttp.ClientSession,
    links: List[CodeLink],
    rate_limiter: RateLimiter,
) -> List[discord.Embed]:
    """Build an embed for every link whose file could be fetched."""
    embeds: List[discord.Embed] = []
    for link in links:
        raw_url = link.raw_url
        if raw_url is None:
            continue
        code = await fetch_code(session, raw_url, rate_limiter)
        if code is None:
            continue
        embeds.append(build_code_embed(link, extract_snippet(code, link.start_line, link.end_line)))
    return embeds
