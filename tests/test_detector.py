"""
Tests for URL and manifest classification.
"""

import pytest

from mediascout.detector import (
    classify_url,
    is_media_url,
    is_manifest_url,
    classify_manifest_role,
    is_protected_url,
)


class TestClassifyUrl:
    @pytest.mark.parametrize("url,kind", [
        ("https://a.com/v/clip.mp4", "video"),
        ("https://a.com/v/clip.WEBM", "video"),
        ("https://a.com/v/clip.mkv?token=abc", "video"),
        ("https://a.com/a/song.mp3", "audio"),
        ("https://a.com/a/song.flac?x=1", "audio"),
        ("https://a.com/hls/index.m3u8", "streaming"),
        ("https://a.com/dash/stream.mpd?sig=1", "streaming"),
        ("https://a.com/subs/en.vtt", "subtitle"),
        ("https://a.com/subs/en.SRT", "subtitle"),
    ])
    def test_known_extensions(self, url, kind):
        assert classify_url(url) == kind

    def test_extension_must_end_path_or_precede_query(self):
        assert classify_url("https://a.com/clip.mp4/page") == "unknown"
        assert classify_url("https://a.com/clip.mp4x") == "unknown"
        assert classify_url("https://a.com/clip.mp4#t=10") == "unknown"

    def test_priority_video_before_streaming(self):
        # both patterns could match; video is tested first
        assert classify_url("https://a.com/x.m3u8?fallback=b.mp4") == "video"

    def test_unrecognised_is_unknown(self):
        assert classify_url("https://a.com/index.html") == "unknown"
        assert classify_url("https://a.com/segment.ts") == "unknown"

    @pytest.mark.parametrize("value", [None, 42, b"x.mp4", "", "::::", "\x00\x01", ["x.mp4"]])
    def test_total_on_malformed_input(self, value):
        assert classify_url(value) == "unknown"
        assert is_media_url(value) is False

    def test_deterministic(self):
        url = "https://a.com/hls/index.m3u8?token=1"
        assert {classify_url(url) for _ in range(10)} == {"streaming"}

    def test_is_media_url(self):
        assert is_media_url("https://a.com/x.ogg")
        assert not is_media_url("https://a.com/x.png")


class TestManifestUrl:
    def test_m3u8_only(self):
        assert is_manifest_url("https://a.com/x.m3u8")
        assert is_manifest_url("https://a.com/x.M3U8?k=v")
        assert not is_manifest_url("https://a.com/x.mpd")
        assert not is_manifest_url(None)


class TestManifestRole:
    def test_master(self):
        text = "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=800000\nlow.m3u8\n"
        assert classify_manifest_role(text) == "master"

    def test_media(self):
        text = "#EXTM3U\n#EXT-X-TARGETDURATION:10\n#EXTINF:10,\nseg0.ts\n"
        assert classify_manifest_role(text) == "media"

    def test_master_wins_when_both_present(self):
        text = "#EXTM3U\n#EXT-X-TARGETDURATION:10\n#EXT-X-STREAM-INF:BANDWIDTH=1\nv.m3u8\n"
        assert classify_manifest_role(text) == "master"

    def test_neither_is_none(self):
        assert classify_manifest_role("#EXTM3U\n") is None
        assert classify_manifest_role("") is None
        assert classify_manifest_role(None) is None
        assert classify_manifest_role(123) is None

    def test_bytes_are_accepted(self):
        assert classify_manifest_role(b"#EXT-X-TARGETDURATION:6") == "media"


class TestProtectedUrl:
    @pytest.mark.parametrize("url", [
        "chrome://settings",
        "chrome-extension://abcdef/popup.html",
        "edge://flags",
        "about:blank",
        "view-source:https://a.com",
        "",
        None,
    ])
    def test_protected(self, url):
        assert is_protected_url(url)

    def test_regular_pages(self):
        assert not is_protected_url("https://a.com/watch")
        assert not is_protected_url("http://localhost:8080/")
