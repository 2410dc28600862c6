"""
Rebuild a segmented HLS stream into one MPEG-TS payload.

Segments are fetched one after another and joined byte for byte, so the
output order is exactly the playlist order.
"""

import asyncio
import enum
import logging
from contextlib import suppress
from pathlib import Path
from typing import Callable

import aiohttp

from .detector import MASTER, classify_manifest_role
from .errors import (
    CancelledError,
    EmptyManifestError,
    ManifestFetchError,
    NoStreamFoundError,
    ReconstructError,
    SegmentFetchError,
)
from .hls import first_variant_uri, parse_media_playlist
from .utils import default_headers, fetch_bytes, fetch_text, open_session

logger = logging.getLogger(__name__)

FETCH_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ValueError)

ProgressFn = Callable[[int, int], None]


class State(enum.Enum):
    IDLE = "idle"
    FETCHING_MANIFEST = "fetching_manifest"
    RESOLVING_MASTER = "resolving_master"
    FETCHING_MEDIA = "fetching_media"
    FETCHING_SEGMENTS = "fetching_segments"
    JOINING = "joining"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancelToken:
    """Cooperative cancellation shared between a caller and a reconstruction."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self):
        await self._event.wait()


class StreamReconstructor:
    """Fetches a playlist, follows one master level, and joins all segments.

    A session passed in is reused and left open; otherwise one is created
    per call and closed on every exit path.
    """

    def __init__(self, session: aiohttp.ClientSession = None, headers: dict = None):
        self.session = session
        self.headers = headers if headers is not None else default_headers()
        self.state = State.IDLE

    async def reconstruct(self, manifest_url: str, on_progress: ProgressFn = None, cancel_token: CancelToken = None) -> bytes:
        """Return the concatenated segments of the stream at ``manifest_url``.

        Raises ManifestFetchError, NoStreamFoundError, EmptyManifestError,
        SegmentFetchError or CancelledError. No partial payload is ever
        returned.
        """
        try:
            if self.session is not None:
                return await self._run(self.session, manifest_url, on_progress, cancel_token)
            async with open_session() as session:
                return await self._run(session, manifest_url, on_progress, cancel_token)
        except CancelledError:
            self.state = State.CANCELLED
            logger.info("Reconstruction cancelled")
            raise
        except ReconstructError as e:
            self.state = State.FAILED
            logger.error(f"Reconstruction failed: {e}")
            raise

    async def _run(self, session, manifest_url, on_progress, cancel_token):
        self._check(cancel_token)
        self.state = State.FETCHING_MANIFEST
        logger.info(f"[1/4] Fetching playlist: {manifest_url}")
        current_url = manifest_url
        text = await self._fetch_manifest(session, current_url, cancel_token)

        if classify_manifest_role(text) == MASTER:
            self.state = State.RESOLVING_MASTER
            variant = first_variant_uri(text, current_url)
            if not variant:
                raise NoStreamFoundError(current_url)
            logger.info(f"[2/4] Master playlist detected, following first stream: {variant}")
            self._check(cancel_token)
            self.state = State.FETCHING_MEDIA
            current_url = variant
            text = await self._fetch_manifest(session, current_url, cancel_token)
        else:
            logger.info("[2/4] Media playlist detected.")

        segments = parse_media_playlist(text, current_url)
        if not segments:
            raise EmptyManifestError(current_url)

        total = len(segments)
        logger.info(f"[3/4] Downloading {total} segments…")
        self.state = State.FETCHING_SEGMENTS
        buffers = []
        try:
            for i, seg in enumerate(segments):
                self._check(cancel_token)
                try:
                    data = await self._fetch(session, seg.uri, cancel_token)
                except FETCH_ERRORS as e:
                    raise SegmentFetchError(i, seg.uri, str(e) or type(e).__name__) from e
                buffers.append(data)
                if on_progress:
                    on_progress(i + 1, total)

            self.state = State.JOINING
            logger.info("[4/4] Joining segments…")
            payload = b"".join(buffers)
        finally:
            buffers.clear()

        if on_progress:
            on_progress(total, total)
        self.state = State.DONE
        logger.info(f"Reconstructed {total} segments, {len(payload)} bytes")
        return payload

    def _check(self, cancel_token):
        if cancel_token is not None and cancel_token.cancelled:
            raise CancelledError()

    async def _fetch_manifest(self, session, url, cancel_token):
        try:
            return await self._fetch(session, url, cancel_token, text=True)
        except FETCH_ERRORS as e:
            raise ManifestFetchError(url, str(e) or type(e).__name__) from e

    async def _fetch(self, session, url, cancel_token, text=False):
        """Fetch ``url``; abort the request if the token fires while it is in flight."""
        fetcher = fetch_text if text else fetch_bytes
        if cancel_token is None:
            return await fetcher(session, url, self.headers)
        fetch = asyncio.ensure_future(fetcher(session, url, self.headers))
        waiter = asyncio.ensure_future(cancel_token.wait())
        try:
            done, _ = await asyncio.wait({fetch, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            fetch.cancel()
            raise
        finally:
            waiter.cancel()
        if fetch not in done:
            fetch.cancel()
            with suppress(asyncio.CancelledError, *FETCH_ERRORS):
                await fetch
            raise CancelledError()
        return fetch.result()


async def save_stream(
    manifest_url: str,
    out_path: Path,
    on_progress: ProgressFn = None,
    cancel_token: CancelToken = None,
    session: aiohttp.ClientSession = None,
    headers: dict = None,
) -> Path:
    """Reconstruct a stream and write it to ``out_path`` with a ``.ts`` suffix.

    Nothing is written unless the whole stream was fetched.
    """
    payload = await StreamReconstructor(session, headers).reconstruct(manifest_url, on_progress, cancel_token)
    out_path = Path(out_path)
    final_ts = out_path if out_path.suffix.lower() == ".ts" else out_path.with_name(out_path.name + ".ts")
    final_ts.parent.mkdir(parents=True, exist_ok=True)
    final_ts.write_bytes(payload)
    logger.info(f"Saved: {final_ts}")
    return final_ts
