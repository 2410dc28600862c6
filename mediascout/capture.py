"""
Playwright-backed host: pages are browsing contexts, their outgoing
requests feed the observation registry, and the DOM collector is evaluated
inside them.

Requires: playwright (pip install playwright; then playwright install chromium)

Only for authorized, NON-DRM sources.
"""

import asyncio
import itertools
import logging
from typing import Dict, Optional
from urllib.parse import urlparse

from playwright.async_api import async_playwright, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from . import config
from .dom_scan import COLLECTOR_JS, DocumentSnapshot
from .errors import InjectionError
from .host import HostAdapter

logger = logging.getLogger(__name__)


def effective_headers(page_url: str = None, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Browser-like request headers, with Referer/Origin derived from ``page_url``."""
    eff = dict(headers or {})
    eff.setdefault("User-Agent", config.USER_AGENT)
    eff.setdefault("Accept", "*/*")
    eff.setdefault("Accept-Language", "en-US,en;q=0.9")
    if page_url:
        eff.setdefault("Referer", page_url)
        uo = urlparse(eff["Referer"])
        if uo.scheme and uo.netloc:
            eff.setdefault("Origin", f"{uo.scheme}://{uo.netloc}")
    return eff


class PlaywrightHost(HostAdapter):
    """Chromium instance whose pages are the monitored contexts.

    Usage::

        async with PlaywrightHost() as host:
            pipeline = ScanPipeline(host)
            tab = await host.open("https://example.com/watch")
            results = await pipeline.scan(tab)
    """

    def __init__(self, headless: bool = None, headers: Optional[Dict[str, str]] = None, scan_timeout: float = None):
        self.headless = config.HEADLESS if headless is None else headless
        self.headers = effective_headers(headers=headers)
        self.scan_timeout = scan_timeout or config.SCAN_TIMEOUT
        self._pw = None
        self._browser = None
        self._context = None
        self._pages = {}
        self._ids = itertools.count(1)
        self._request_callbacks = []
        self._closed_callbacks = []

    async def start(self):
        self._pw = await async_playwright().start()
        # Launch Chromium with minimal automation fingerprinting
        self._browser = await self._pw.chromium.launch(
            headless=self.headless,
            args=["--disable-blink-features=AutomationControlled"],
        )
        self._context = await self._browser.new_context(
            user_agent=self.headers.get("User-Agent", config.USER_AGENT),
            extra_http_headers={k: v for k, v in self.headers.items() if k.lower() != "user-agent"},
            ignore_https_errors=True,
            viewport={"width": 1366, "height": 768},
            locale="en-US",
        )
        self._context.set_default_navigation_timeout(config.NAVIGATION_TIMEOUT)
        # Pop-ups and new tabs become contexts of their own
        self._context.on("page", self.attach)
        return self

    async def close(self):
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._pw is not None:
            await self._pw.stop()
        self._context = self._browser = self._pw = None

    async def __aenter__(self):
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def on_request(self, callback):
        self._request_callbacks.append(callback)

    def on_context_closed(self, callback):
        self._closed_callbacks.append(callback)

    def attach(self, page) -> int:
        """Start monitoring ``page`` and return its context id."""
        for cid, known in self._pages.items():
            if known is page:
                return cid
        cid = next(self._ids)
        self._pages[cid] = page
        page.on("request", lambda req: self._emit_request(cid, req.url))
        page.on("close", lambda _page: self._emit_closed(cid))
        logger.debug(f"Attached context {cid}")
        return cid

    async def open(self, page_url: str, wait_seconds: float = None) -> int:
        """Open ``page_url`` in a new page, let its traffic settle, return the context id."""
        page = await self._context.new_page()
        cid = self.attach(page)
        logger.info(f"Opening {page_url}")
        await page.goto(page_url, wait_until="domcontentloaded")
        wait = config.WAIT_SECONDS if wait_seconds is None else wait_seconds
        # Playwright treats a timeout of 0 as "no timeout"
        if wait <= 0:
            return cid
        try:
            await page.wait_for_load_state("networkidle", timeout=wait * 1000)
        except PlaywrightTimeoutError:
            pass
        return cid

    def context_url(self, context_id):
        page = self._pages.get(context_id)
        if page is None or page.is_closed():
            return None
        return page.url

    async def run_dom_scan(self, context_id) -> DocumentSnapshot:
        page = self._pages.get(context_id)
        if page is None or page.is_closed():
            raise InjectionError(f"Context {context_id} is not available for scanning.")
        try:
            data = await asyncio.wait_for(page.evaluate(COLLECTOR_JS), timeout=self.scan_timeout)
        except (PlaywrightError, asyncio.TimeoutError) as e:
            raise InjectionError(f"Failed to scan page: {str(e) or 'scanner did not respond in time'}") from e
        return DocumentSnapshot.from_dict(data)

    def _emit_request(self, context_id, url):
        for callback in self._request_callbacks:
            try:
                callback(context_id, url)
            except Exception as e:
                logger.warning(f"Request callback failed for {url[:120]}: {e}")

    def _emit_closed(self, context_id):
        self._pages.pop(context_id, None)
        for callback in self._closed_callbacks:
            try:
                callback(context_id)
            except Exception as e:
                logger.warning(f"Close callback failed for context {context_id}: {e}")
