"""
Pytest configuration for mediascout tests.

``origin`` is a real local HTTP server; tests register paths on it and
inspect which requests were made.
"""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from mediascout.dom_scan import DocumentSnapshot
from mediascout.errors import InjectionError
from mediascout.host import HostAdapter


class FakeOrigin:
    """Serves registered bodies and records every request as (method, path)."""

    def __init__(self):
        self.routes = {}
        self.hits = []
        self.server = None

    def add(self, path, body, status=200, headers=None, delay=0):
        if isinstance(body, str):
            body = body.encode()
        self.routes[path] = (status, body, headers or {}, delay)
        return self.url(path)

    def url(self, path):
        return str(self.server.make_url(path))

    def requested(self, path, method="GET"):
        return sum(1 for m, p in self.hits if m == method and p == path)

    async def handle(self, request):
        self.hits.append((request.method, request.path))
        route = self.routes.get(request.path)
        if route is None:
            return web.Response(status=404, text="not found")
        status, body, headers, delay = route
        if delay:
            await asyncio.sleep(delay)
        return web.Response(status=status, body=body, headers=headers)


@pytest_asyncio.fixture
async def origin():
    fake = FakeOrigin()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", fake.handle)
    server = TestServer(app)
    await server.start_server()
    fake.server = server
    try:
        yield fake
    finally:
        await server.close()


class FakeHost(HostAdapter):
    """In-memory host: contexts are ids mapped to a URL and a document snapshot."""

    def __init__(self):
        self.pages = {}
        self.snapshots = {}
        self.scan_calls = []
        self.fail_injection = False
        self._request_callbacks = []
        self._closed_callbacks = []

    def open(self, context_id, url, snapshot=None):
        self.pages[context_id] = url
        self.snapshots[context_id] = snapshot or DocumentSnapshot(url)

    def request(self, context_id, url):
        for cb in self._request_callbacks:
            cb(context_id, url)

    def close(self, context_id):
        self.pages.pop(context_id, None)
        for cb in self._closed_callbacks:
            cb(context_id)

    def context_url(self, context_id):
        return self.pages.get(context_id)

    async def run_dom_scan(self, context_id):
        self.scan_calls.append(context_id)
        if self.fail_injection:
            raise InjectionError()
        return self.snapshots[context_id]

    def on_request(self, callback):
        self._request_callbacks.append(callback)

    def on_context_closed(self, callback):
        self._closed_callbacks.append(callback)


@pytest.fixture
def host():
    return FakeHost()
