"""
Interface between the scan pipeline and the environment that renders pages.

The pipeline only talks to a HostAdapter, so it can run against a real
browser (see ``capture.PlaywrightHost``) or a fake in tests.
"""

from abc import ABC, abstractmethod

from .dom_scan import DocumentSnapshot


class HostAdapter(ABC):
    @abstractmethod
    def context_url(self, context_id):
        """URL currently loaded in the context, or None if the context does not exist."""

    @abstractmethod
    async def run_dom_scan(self, context_id) -> DocumentSnapshot:
        """Inject the page collector if needed and return what it found.

        Raises InjectionError when the collector cannot be placed or does
        not answer.
        """

    def on_request(self, callback):
        """Register ``callback(context_id, url)`` for every outgoing request."""

    def on_context_closed(self, callback):
        """Register ``callback(context_id)`` for contexts that go away."""
