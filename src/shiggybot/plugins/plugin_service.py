"""Fetching and caching of the community plugin catalog.

The catalog is a static JSON array served from GitHub. It changes rarely, so
:class:`PluginCatalog` keeps the last good copy for a few minutes and serves
it to searches and install-button clicks alike.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Iterable, List

import aiohttp

from shiggybot.datatypes.plugin_datatypes import PluginRecord
from shiggybot.util.logger import get_logger

logger = get_logger("plugin_service")

FETCH_TIMEOUT_SECONDS = 10
CATALOG_TTL_SECONDS = 300.0
USER_AGENT = "ShiggyBot/1.0"


def parse_catalog(payload: Any) -> List[PluginRecord]:
    """Convert the decoded catalog JSON into records, skipping malformed entries."""
    if not isinstance(payload, list):
        logger.warning("[PLUGIN SERVICE] Catalog payload is %s, expected a list", type(payload).__name__)
        return []

    records: List[PluginRecord] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        try:
            records.append(PluginRecord.from_dict(entry))
        except ValueError as exc:
            logger.debug("[PLUGIN SERVICE] Skipping catalog entry: %s", exc)
    return records


async def fetch_plugin_catalog(url: str) -> List[PluginRecord]:
    """Download the catalog from ``url``.

    Returns an empty list (and logs the failure) when the request fails or the
    payload is not valid JSON.
    """
    timeout = aiohttp.ClientTimeout(total=FETCH_TIMEOUT_SECONDS)
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    try:
        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    logger.error("[PLUGIN SERVICE] Catalog request failed with HTTP %s", response.status)
                    return []
                # raw.githubusercontent.com serves JSON as text/plain
                payload = await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        logger.error("[PLUGIN SERVICE] Failed to fetch plugin catalog: %s", exc)
        return []

    records = parse_catalog(payload)
    logger.debug("[PLUGIN SERVICE] Loaded %d plugins from catalog", len(records))
    return records


class PluginCatalog:
    """Time-bounded cache in front of :func:`fetch_plugin_catalog`.

    A failed refresh keeps serving the previous records so a GitHub hiccup
    does not empty search results.
    """

    def __init__(self, url: str, ttl_seconds: float = CATALOG_TTL_SECONDS) -> None:
        self.url = url
        self.ttl_seconds = ttl_seconds
        self._records: List[PluginRecord] = []
        self._fetched_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def records(self) -> List[PluginRecord]:
        return list(self._records)

    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return time.monotonic() - self._fetched_at >= self.ttl_seconds

    def replace(self, records: Iterable[PluginRecord]) -> None:
        self._records = list(records)
        self._fetched_at = time.monotonic()

    async def get(self, force_refresh: bool = False) -> List[PluginRecord]:
        """Return the catalog, fetching it first when stale or when forced."""
        async with self._lock:
            if force_refresh or self.is_stale():
                fetched = await fetch_plugin_catalog(self.url)
                if fetched:
                    self.replace(fetched)
                elif self._records:
                    logger.warning("[PLUGIN SERVICE] Refresh failed; serving %d cached plugins", len(self._records))
            return self.records
