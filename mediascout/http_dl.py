"""
Plain HTTP downloads for media that is a single file (MP4, WebM, MP3, VTT...).
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import aiohttp

from .errors import CancelledError, FileDownloadError
from .utils import default_headers, open_session

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

ProgressFn = Optional[Callable[[int, Optional[int]], None]]


async def download_file(
    url: str,
    out_path: Path,
    on_progress: ProgressFn = None,
    cancel_token=None,
    session: aiohttp.ClientSession = None,
    headers: dict = None,
) -> Path:
    """Stream ``url`` into ``out_path`` and return the saved path.

    ``on_progress(done_bytes, total_bytes)`` is called after every chunk;
    ``total_bytes`` is None when the server sends no Content-Length. The body
    goes to a ``.part`` file that is renamed on success and removed on
    failure or cancellation, so ``out_path`` only ever holds a complete file.
    """
    out_path = Path(out_path)
    part_path = out_path.with_name(out_path.name + ".part")
    own_session = session is None
    if own_session:
        session = open_session()
    try:
        if cancel_token is not None and cancel_token.cancelled:
            raise CancelledError()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with session.get(url, headers=headers or default_headers()) as r:
                r.raise_for_status()
                total = r.headers.get("Content-Length")
                total = int(total) if total and total.isdigit() else None
                done = 0
                with open(part_path, "wb") as f:
                    async for chunk in r.content.iter_chunked(CHUNK_SIZE):
                        if cancel_token is not None and cancel_token.cancelled:
                            raise CancelledError()
                        f.write(chunk)
                        done += len(chunk)
                        if on_progress:
                            on_progress(done, total)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise FileDownloadError(url, str(e) or type(e).__name__) from e
        part_path.replace(out_path)
    except BaseException:
        part_path.unlink(missing_ok=True)
        raise
    finally:
        if own_session:
            await session.close()
    logger.info(f"Saved: {out_path}")
    return out_path
