from urllib.parse import urljoin, urlparse, urlunparse

from .detector import MASTER_MARKER

# Usual file names of a master playlist, most likely first
MASTER_CANDIDATES = ("master.m3u8", "playlist.m3u8", "index.m3u8", "manifest.m3u8")


class Segment:
    """Represents an HLS media segment with its position and declared duration."""

    def __init__(self, uri, duration=None, seq=None):
        self.uri = uri
        self.duration = duration
        self.seq = seq


def normalize_uri(base_url: str, uri: str) -> str:
    """
    Make a playlist URI absolute.

    Handles:
    - Absolute URLs: return as-is
    - Scheme-less URLs: //host/path → scheme from base
    - Relative and site-relative paths: urljoin(base, path)
    """
    if not uri:
        return uri
    u = uri.strip()
    if u.startswith("http://") or u.startswith("https://"):
        return u
    if u.startswith("//"):
        base = urlparse(base_url)
        return f"{base.scheme}:{u}"
    return urljoin(base_url, u)


def _lines(text: str):
    return [line.strip() for line in (text or "").splitlines()]


def first_variant_uri(text: str, base_url: str):
    """Return the absolute URI of the first variant in a master playlist.

    The variant is the first non-comment, non-blank line after the first
    ``#EXT-X-STREAM-INF`` line. Returns None when there is no such line.
    """
    lines = _lines(text)
    for i, line in enumerate(lines):
        if not line.startswith(MASTER_MARKER):
            continue
        for nxt in lines[i + 1:]:
            if nxt and not nxt.startswith("#"):
                try:
                    return normalize_uri(base_url, nxt)
                except ValueError:
                    return None
        return None
    return None


def parse_extinf(line: str):
    """Parse the duration of an ``#EXTINF:<duration>,<title>`` line, or None."""
    try:
        return float(line.split(":", 1)[1].split(",", 1)[0].strip())
    except (IndexError, ValueError):
        return None


def parse_media_playlist(text: str, base_url: str):
    """Parse an HLS media playlist to extract segments.

    Every non-comment, non-blank line is a segment, resolved against
    ``base_url`` and kept in file order. Lines that cannot be resolved are
    skipped.

    Args:
        text: Media playlist content as string
        base_url: Base URL for resolving relative URIs

    Returns:
        List of Segment objects
    """
    segments = []
    seq = 0
    current_dur = None

    for line in _lines(text):
        if line.startswith("#EXT-X-MEDIA-SEQUENCE:"):
            try:
                seq = int(line.split(":", 1)[1])
            except ValueError:
                pass
        elif line.startswith("#EXTINF:"):
            current_dur = parse_extinf(line)
        elif line and not line.startswith("#"):
            try:
                seg_url = normalize_uri(base_url, line)
            except ValueError:
                continue
            segments.append(Segment(seg_url, duration=current_dur, seq=seq))
            seq += 1
            current_dur = None
    return segments


def playlist_duration(text: str) -> float:
    """Sum of every ``#EXTINF`` duration in a media playlist, in seconds."""
    total = 0.0
    for line in _lines(text):
        if line.startswith("#EXTINF:"):
            dur = parse_extinf(line)
            if dur is not None:
                total += dur
    return round(total, 3)


def suggest_master_url(media_url: str):
    """Guess the master playlist next to a media playlist.

    https://cdn.example.com/videos/abc/level_0.m3u8 -> https://cdn.example.com/videos/abc/master.m3u8

    Nothing is fetched; the first candidate name is returned as is.
    """
    try:
        u = urlparse(media_url)
    except (AttributeError, TypeError, ValueError):
        return None
    if not u.scheme or not u.netloc:
        return None
    base_dir = u.path.rsplit("/", 1)[0]
    return urlunparse((u.scheme, u.netloc, f"{base_dir}/{MASTER_CANDIDATES[0]}", "", "", ""))
