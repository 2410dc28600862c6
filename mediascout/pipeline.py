"""
Scan pipeline: DOM scan + network observations -> merged, enriched results.
"""

import logging
from typing import List

import aiohttp

from .detector import is_protected_url
from .dom_scan import scan_document
from .enrich import Enricher
from .errors import ContextNotFoundError, InjectionError, ProtectedContextError
from .host import HostAdapter
from .observation import MediaObservation, merge_observations
from .store import ObservationRegistry
from .utils import default_headers, open_session

logger = logging.getLogger(__name__)


class ScanPipeline:
    """Serves scan requests for the contexts of one host.

    The pipeline owns the ObservationRegistry and wires it to the host's
    request and context-closed events on construction.
    """

    def __init__(
        self,
        host: HostAdapter,
        registry: ObservationRegistry = None,
        session: aiohttp.ClientSession = None,
        headers: dict = None,
        strict_injection: bool = False,
        probe_timeout: float = None,
    ):
        self.host = host
        self.registry = registry if registry is not None else ObservationRegistry()
        self.session = session
        self.headers = headers if headers is not None else default_headers()
        self.strict_injection = strict_injection
        self.probe_timeout = probe_timeout
        host.on_request(self.registry.record)
        host.on_context_closed(self.registry.evict)

    def subscribe(self, listener):
        """Receive ``listener(context_id, observation)`` for each new network observation."""
        self.registry.subscribe(listener)

    def unsubscribe(self, listener):
        self.registry.unsubscribe(listener)

    async def scan(self, context_id) -> List[MediaObservation]:
        """Return the merged and enriched media list for a context.

        Raises ContextNotFoundError or ProtectedContextError before anything
        else is touched. InjectionError is only raised in strict mode;
        otherwise the scan falls back to network observations.
        """
        url = self.host.context_url(context_id)
        if url is None:
            raise ContextNotFoundError(context_id)
        if is_protected_url(url):
            raise ProtectedContextError(url)

        try:
            snapshot = await self.host.run_dom_scan(context_id)
            dom_results = scan_document(snapshot)
        except InjectionError as e:
            if self.strict_injection:
                raise
            logger.warning(f"DOM scan unavailable for context {context_id}, using network results only: {e}")
            dom_results = []

        network_results = self.registry.snapshot(context_id)
        merged = merge_observations(dom_results, network_results)
        logger.info(
            f"Context {context_id}: {len(dom_results)} from DOM, {len(network_results)} from network, "
            f"{len(merged)} after merge"
        )
        if not merged:
            return merged

        if self.session is not None:
            await Enricher(self.session, self.headers, self.probe_timeout).enrich_all(merged)
        else:
            async with open_session() as session:
                await Enricher(session, self.headers, self.probe_timeout).enrich_all(merged)
        return merged
