"""
DOM scanning.

The page side is a small JavaScript collector evaluated inside the page: it
only gathers raw element URLs and script bodies. Admission, classification
and the script heuristics run here in Python on the returned snapshot.
"""

import json
import logging
import re
from typing import List, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from .detector import classify_url, SUBTITLE, UNKNOWN
from .observation import MediaObservation

logger = logging.getLogger(__name__)

REJECTED_SCHEMES = ("javascript:", "data:", "blob:")

# Literal media URLs inside inline scripts
SCRIPT_URL_RE = re.compile(
    r"""(?:https?://|www\.)[^\s"']+\.(?:mp4|webm|m3u8|mpd|mp3|wav|m4a|vtt|srt)(?:\?[\w=&.]+)?""",
    re.IGNORECASE,
)

# Script types holding data rather than code; never scanned as raw text
JSON_SCRIPT_TYPES = ("application/json", "application/ld+json")

MAX_JSON_DEPTH = 10

COLLECTOR_JS = """
() => {
  if (!window.__mediascoutInjected) {
    window.__mediascoutInjected = true;
    window.__mediascoutCollect = () => {
      const snap = { base_uri: document.baseURI, media: [], links: [], scripts: [] };
      document.querySelectorAll('video, audio').forEach(el => {
        snap.media.push({
          tag: el.tagName.toLowerCase(),
          src: el.src || null,
          sources: Array.from(el.querySelectorAll('source')).map(s => s.src).filter(Boolean),
          tracks: Array.from(el.querySelectorAll('track')).map(t => t.src).filter(Boolean),
        });
      });
      document.querySelectorAll('a[href]').forEach(a => snap.links.push(a.href));
      document.querySelectorAll('script').forEach(s => {
        snap.scripts.push({ type: s.type || '', text: s.textContent || '' });
      });
      return snap;
    };
  }
  return window.__mediascoutCollect();
}
"""


class MediaElement:
    """A ``<video>`` or ``<audio>`` element and its nested sources and tracks."""

    def __init__(self, tag, src=None, sources=None, tracks=None):
        self.tag = tag
        self.src = src
        self.sources = list(sources or [])
        self.tracks = list(tracks or [])


class ScriptBlock:
    def __init__(self, text, type_=""):
        self.text = text
        self.type = type_ or ""


class DocumentSnapshot:
    """Raw candidates collected from one document."""

    def __init__(self, base_uri, media=None, links=None, scripts=None):
        self.base_uri = base_uri
        self.media: List[MediaElement] = list(media or [])
        self.links: List[str] = list(links or [])
        self.scripts: List[ScriptBlock] = list(scripts or [])

    @classmethod
    def from_dict(cls, data):
        """Build a snapshot from the collector's result, skipping malformed entries."""
        if not isinstance(data, dict):
            return cls(None)
        media = []
        for el in data.get("media") or []:
            if isinstance(el, dict) and el.get("tag"):
                media.append(MediaElement(str(el["tag"]).lower(), el.get("src"), el.get("sources"), el.get("tracks")))
        scripts = []
        for s in data.get("scripts") or []:
            if isinstance(s, dict):
                scripts.append(ScriptBlock(s.get("text") or "", s.get("type") or ""))
        links = [u for u in (data.get("links") or []) if isinstance(u, str)]
        return cls(data.get("base_uri"), media, links, scripts)


DEFAULT_PORTS = {"http": 80, "https": 443}


def _remove_dot_segments(path):
    segments = path.split("/")
    out = []
    for seg in segments:
        if seg == ".":
            continue
        if seg == "..":
            if len(out) > 1:
                out.pop()
            continue
        out.append(seg)
    if segments[-1] in (".", ".."):
        out.append("")
    return "/".join(out)


def normalize_url(url: str) -> str:
    """Canonical form of an absolute URL, as a browser would report it.

    Scheme and host are lowercased, default ports dropped and ``.``/``..``
    path segments resolved. Raises ValueError for a malformed authority.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    netloc = parts.netloc
    path = parts.path
    if netloc:
        userinfo, _, _ = netloc.rpartition("@")
        host = parts.hostname or ""
        if ":" in host:
            host = f"[{host}]"
        port = parts.port
        if port is not None and port != DEFAULT_PORTS.get(scheme):
            host = f"{host}:{port}"
        netloc = f"{userinfo}@{host}" if userinfo else host
        path = _remove_dot_segments(path) or "/"
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))


def resolve_candidate(url, base_uri) -> Optional[str]:
    """Resolve ``url`` to an absolute URL, or None if it must not be admitted."""
    if not url or not isinstance(url, str):
        return None
    url = url.strip()
    if url.lower().startswith(REJECTED_SCHEMES):
        return None
    try:
        absolute = urljoin(base_uri or "", url)
        parts = urlsplit(absolute)
    except ValueError:
        return None
    if not parts.scheme or parts.scheme.lower() in ("javascript", "data", "blob"):
        return None
    if parts.scheme.lower() in ("http", "https") and not parts.netloc:
        return None
    try:
        return normalize_url(absolute)
    except ValueError:
        return None


class _Collector:
    def __init__(self, base_uri):
        self.base_uri = base_uri
        self.results: List[MediaObservation] = []
        self.seen = set()

    def add(self, url, kind, origin_detail):
        absolute = resolve_candidate(url, self.base_uri)
        if absolute is None or absolute in self.seen:
            return
        kind = kind or classify_url(absolute)
        if kind == UNKNOWN:
            return
        self.seen.add(absolute)
        self.results.append(MediaObservation.from_dom(absolute, kind, origin_detail))


def _walk_json(obj, collector, depth=0):
    if depth > MAX_JSON_DEPTH:
        return
    if isinstance(obj, str):
        if classify_url(obj) != UNKNOWN:
            collector.add(obj, None, "json-data")
    elif isinstance(obj, dict):
        for value in obj.values():
            _walk_json(value, collector, depth + 1)
    elif isinstance(obj, list):
        for value in obj:
            _walk_json(value, collector, depth + 1)


def scan_document(snapshot: DocumentSnapshot) -> List[MediaObservation]:
    """Extract media observations from a document snapshot.

    Order: media elements (own source, nested sources, tracks), then links,
    then script heuristics. The first occurrence of a URL wins.
    """
    collector = _Collector(snapshot.base_uri)

    for el in snapshot.media:
        if el.src:
            collector.add(el.src, el.tag, el.tag)
        for src in el.sources:
            collector.add(src, el.tag, "source")
        for src in el.tracks:
            collector.add(src, SUBTITLE, "track")

    for href in snapshot.links:
        collector.add(href, None, "a")

    for script in snapshot.scripts:
        script_type = script.type.strip().lower()
        if not script.text or script_type in JSON_SCRIPT_TYPES:
            continue
        try:
            for match in SCRIPT_URL_RE.findall(script.text):
                collector.add(match, None, "script")
        except Exception as e:
            logger.debug(f"Script heuristic skipped a block: {e}")

    for script in snapshot.scripts:
        if "json" not in script.type.lower():
            continue
        try:
            data = json.loads(script.text)
        except (TypeError, ValueError, RecursionError):
            continue
        _walk_json(data, collector)

    return collector.results
