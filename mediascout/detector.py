"""
URL and manifest classification.

Every function here is pure and total: malformed input yields ``"unknown"``,
``None`` or ``False`` instead of raising.
"""

import re

VIDEO = "video"
AUDIO = "audio"
STREAMING = "streaming"
SUBTITLE = "subtitle"
UNKNOWN = "unknown"

KINDS = (VIDEO, AUDIO, STREAMING, SUBTITLE, UNKNOWN)

MASTER = "master"
MEDIA = "media"

# Checked in this order; the first match wins.
MEDIA_PATTERNS = (
    (VIDEO, re.compile(r"\.(mp4|webm|ogv|mov|avi|mkv|flv|m4v)(\Z|\?)", re.IGNORECASE)),
    (AUDIO, re.compile(r"\.(mp3|wav|m4a|aac|ogg|opus|flac|wma)(\Z|\?)", re.IGNORECASE)),
    (STREAMING, re.compile(r"\.(m3u8|mpd)(\Z|\?)", re.IGNORECASE)),
    (SUBTITLE, re.compile(r"\.(vtt|srt|ass|ssa)(\Z|\?)", re.IGNORECASE)),
)

HLS_PATTERN = re.compile(r"\.m3u8(\Z|\?)", re.IGNORECASE)

MASTER_MARKER = "#EXT-X-STREAM-INF"
MEDIA_MARKER = "#EXT-X-TARGETDURATION"

PROTECTED_PREFIXES = (
    "chrome://",
    "chrome-extension://",
    "edge://",
    "about:",
    "view-source:",
)


def classify_url(url) -> str:
    """Return the media kind of a URL based on its extension."""
    if not isinstance(url, str):
        return UNKNOWN
    for kind, pattern in MEDIA_PATTERNS:
        if pattern.search(url):
            return kind
    return UNKNOWN


def is_media_url(url) -> bool:
    return classify_url(url) != UNKNOWN


def is_manifest_url(url) -> bool:
    """True when the URL names an HLS playlist (``.m3u8``)."""
    return isinstance(url, str) and HLS_PATTERN.search(url) is not None


def classify_manifest_role(content):
    """Classify the first bytes of a playlist as ``"master"``, ``"media"`` or None.

    A master marker wins when both markers are present. None means the
    content is not recognisable yet (empty, truncated or not a playlist).
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    if not isinstance(content, str):
        return None
    if MASTER_MARKER in content:
        return MASTER
    if MEDIA_MARKER in content:
        return MEDIA
    return None


def is_protected_url(url) -> bool:
    """Internal browser pages where the scanner must not be injected."""
    if not url or not isinstance(url, str):
        return True
    return url.startswith(PROTECTED_PREFIXES)
