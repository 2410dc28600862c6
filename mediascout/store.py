"""
Per-context storage of media URLs seen in network traffic.

The request listener is the only writer; scans read a copy through
``snapshot()``.
"""

import logging
from collections import deque
from typing import Callable, Dict, List, Optional

from . import config
from .detector import classify_url, is_media_url
from .observation import MediaObservation

logger = logging.getLogger(__name__)

Listener = Callable[[object, MediaObservation], None]


def admissible(url) -> bool:
    """True for request URLs worth recording: media, and not a ``blob:`` URL."""
    return isinstance(url, str) and not url.startswith("blob:") and is_media_url(url)


class ObservationStore:
    """Bounded, append-only list of network observations for one context."""

    def __init__(self, max_items: int = None):
        self.max_items = max_items or config.MAX_OBSERVATIONS
        self._items = deque()
        self._urls = set()

    def add(self, url: str, discovered_at: float = None) -> Optional[MediaObservation]:
        """Record ``url`` if it is new media. Returns the observation, or None if skipped."""
        if not admissible(url) or url in self._urls:
            return None
        obs = MediaObservation.from_network(url, classify_url(url), discovered_at)
        self._items.append(obs)
        self._urls.add(url)
        while len(self._items) > self.max_items:
            evicted = self._items.popleft()
            self._urls.discard(evicted.url)
        return obs

    def snapshot(self) -> List[MediaObservation]:
        return [obs.copy() for obs in self._items]

    def __len__(self):
        return len(self._items)

    def __contains__(self, url):
        return url in self._urls


class ObservationRegistry:
    """Owns one ObservationStore per browsing context."""

    def __init__(self, max_items: int = None):
        self.max_items = max_items
        self._stores: Dict[object, ObservationStore] = {}
        self._listeners: List[Listener] = []

    def record(self, context_id, url: str, discovered_at: float = None) -> Optional[MediaObservation]:
        """Handle one outgoing request URL for ``context_id``."""
        if not admissible(url):
            return None
        store = self._stores.get(context_id)
        if store is None:
            store = self._stores[context_id] = ObservationStore(self.max_items)
        obs = store.add(url, discovered_at)
        if obs is not None:
            logger.debug(f"Observed {obs.kind} in context {context_id}: {url[:120]}")
            self._notify(context_id, obs)
        return obs

    def get(self, context_id) -> Optional[ObservationStore]:
        return self._stores.get(context_id)

    def snapshot(self, context_id) -> List[MediaObservation]:
        store = self._stores.get(context_id)
        return store.snapshot() if store is not None else []

    def evict(self, context_id):
        """Drop everything recorded for a context that has closed."""
        if self._stores.pop(context_id, None) is not None:
            logger.debug(f"Context {context_id} closed, observations dropped")

    def contexts(self):
        return list(self._stores)

    def subscribe(self, listener: Listener):
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener):
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self, context_id, obs: MediaObservation):
        for listener in list(self._listeners):
            try:
                listener(context_id, obs)
            except Exception as e:
                logger.debug(f"Observation listener failed: {e}")
