from urllib.parse import urlparse

import aiohttp

from . import config


def default_headers(ua: str = None, ref: str = None):
    headers = {"User-Agent": ua or config.USER_AGENT}
    if ref:
        headers["Referer"] = ref
    return headers


def open_session(limit: int = None) -> aiohttp.ClientSession:
    """Create a ClientSession with no total timeout; callers bound individual requests."""
    timeout = aiohttp.ClientTimeout(total=None, sock_connect=30, sock_read=120)
    conn = aiohttp.TCPConnector(limit=limit or config.CONNECTION_LIMIT)
    return aiohttp.ClientSession(timeout=timeout, connector=conn)


async def fetch_text(session: aiohttp.ClientSession, url: str, headers: dict = None):
    """Fetch text content from a URL using an existing aiohttp session."""
    async with session.get(url, headers=headers) as r:
        r.raise_for_status()
        return await r.text(errors="replace")


async def fetch_bytes(session: aiohttp.ClientSession, url: str, headers: dict = None):
    """Fetch binary content from a URL using an existing aiohttp session."""
    async with session.get(url, headers=headers) as r:
        r.raise_for_status()
        return await r.read()


async def probe_size(session: aiohttp.ClientSession, url: str, headers: dict = None, timeout: float = None):
    """Return the Content-Length reported by a HEAD request, or None.

    The request is bounded by its own short timeout.
    """
    limit = aiohttp.ClientTimeout(total=timeout or config.PROBE_TIMEOUT)
    async with session.head(url, headers=headers, timeout=limit, allow_redirects=True) as r:
        if r.status >= 400:
            return None
        length = r.headers.get("Content-Length")
        return int(length) if length and length.isdigit() else None


def suggested_filename(url: str) -> str:
    """File name for saving ``url``: last path segment, else the host name."""
    try:
        u = urlparse(url)
        filename = u.path.split("/")[-1]
        if not filename or len(filename) < 3:
            filename = (u.hostname or "media").replace(".", "_") + ".file"
        return filename.split("?")[0].split("#")[0]
    except (AttributeError, ValueError):
        return "media_file"


def file_extension(url: str) -> str:
    try:
        path = urlparse(url).path
    except (AttributeError, ValueError):
        return "URL"
    ext = path.split(".")[-1].upper() if "." in path else ""
    return ext if ext and len(ext) < 5 else "FILE"


def truncate_url(url: str) -> str:
    try:
        u = urlparse(url)
    except (AttributeError, ValueError):
        u = None
    if u is not None and u.netloc:
        filename = u.path.split("/")[-1]
        if filename and len(filename) > 5:
            return filename
        return u.netloc + u.path
    return url[:47] + "..." if len(url) > 50 else url


def format_size(num_bytes) -> str:
    if not num_bytes:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 1):g} {units[i]}"


def format_duration(seconds) -> str:
    if seconds is None:
        return ""
    total = int(round(seconds))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h}:{m:02d}:{s:02d}" if h else f"{m}:{s:02d}"


def sort_results(results):
    """Order for display: by kind, then by origin."""
    return sorted(results, key=lambda item: (item.kind, item.origin))


def filter_results(results, kind: str = "all", search: str = ""):
    """Keep items of ``kind`` whose URL or origin detail contains ``search``."""
    term = (search or "").lower()
    out = []
    for item in results:
        if kind and kind != "all" and item.kind != kind:
            continue
        if term and term not in item.url.lower() and term not in (item.origin_detail or "").lower():
            continue
        out.append(item)
    return out


def copy_text(results) -> str:
    """All URLs one per line, as placed on the clipboard."""
    return "\n".join(item.url for item in results)


def describe(item) -> str:
    """One-line summary: extension, origin, size, duration, master hint."""
    label = item.kind
    if item.kind == "streaming" and item.manifest_role:
        label = f"HLS ({item.manifest_role.upper()})"
    source = f"DOM ({item.origin_detail})" if item.origin == "dom" else "Network"
    parts = [label, file_extension(item.url), source]
    if item.size_bytes:
        parts.append(format_size(item.size_bytes))
    if item.duration_seconds is not None:
        parts.append(format_duration(item.duration_seconds))
    if item.suggested_master_url:
        parts.append(f"likely master: {item.suggested_master_url}")
    return " • ".join(parts)
