"""
Best-effort metadata for merged observations.

Every item is enriched independently; a failure only leaves that item's
optional fields unset.
"""

import asyncio
import logging

import aiohttp

from . import config
from .detector import AUDIO, VIDEO, STREAMING, MASTER, MEDIA, classify_manifest_role, is_manifest_url
from .hls import first_variant_uri, playlist_duration, suggest_master_url
from .utils import fetch_text, probe_size

logger = logging.getLogger(__name__)


class Enricher:
    """Attach size, manifest role, duration and master hints to observations."""

    def __init__(self, session: aiohttp.ClientSession, headers: dict = None, probe_timeout: float = None):
        self.session = session
        self.headers = headers or {}
        self.probe_timeout = probe_timeout or config.PROBE_TIMEOUT

    async def enrich_all(self, items):
        """Enrich all items concurrently and wait until every one has settled."""
        await asyncio.gather(*(self.enrich(item) for item in items))
        return items

    async def enrich(self, item):
        try:
            if item.kind in (VIDEO, AUDIO):
                await self._add_size(item)
            elif item.kind == STREAMING and is_manifest_url(item.url):
                await self._analyse_manifest(item)
        except Exception as e:
            logger.debug(f"Enrichment failed for {item.url[:120]}: {e}")
        return item

    async def _add_size(self, item):
        try:
            size = await probe_size(self.session, item.url, self.headers, self.probe_timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"Size probe failed for {item.url[:120]}: {e}")
            return
        if size:
            item.size_bytes = size

    async def _analyse_manifest(self, item):
        text = await fetch_text(self.session, item.url, self.headers)
        role = classify_manifest_role(text[:config.MANIFEST_PREFIX_CHARS])
        if role is None:
            return
        item.manifest_role = role
        if role == MEDIA:
            item.duration_seconds = playlist_duration(text)
            item.suggested_master_url = suggest_master_url(item.url)
        elif role == MASTER:
            variant = first_variant_uri(text, item.url)
            if not variant:
                return
            sub = await fetch_text(self.session, variant, self.headers)
            if classify_manifest_role(sub[:config.MANIFEST_PREFIX_CHARS]) == MEDIA:
                item.duration_seconds = playlist_duration(sub)
