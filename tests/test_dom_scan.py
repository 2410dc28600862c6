"""
Tests for DOM snapshot scanning.
"""

import json

import pytest

from mediascout.dom_scan import (
    COLLECTOR_JS,
    DocumentSnapshot,
    MediaElement,
    ScriptBlock,
    resolve_candidate,
    scan_document,
)

BASE = "https://site.example.com/watch/page.html"


def urls(results):
    return [r.url for r in results]


class TestMediaElements:
    def test_element_source_and_tracks(self):
        snap = DocumentSnapshot(BASE, media=[
            MediaElement(
                "video",
                src="/media/main.mp4",
                sources=["alt.webm", "https://cdn.example.com/stream.m3u8"],
                tracks=["subs/en.txt"],
            ),
        ])
        results = scan_document(snap)
        assert urls(results) == [
            "https://site.example.com/media/main.mp4",
            "https://site.example.com/watch/alt.webm",
            "https://cdn.example.com/stream.m3u8",
            "https://site.example.com/watch/subs/en.txt",
        ]
        assert [r.kind for r in results] == ["video", "video", "video", "subtitle"]
        assert [r.origin_detail for r in results] == ["video", "source", "source", "track"]
        assert all(r.origin == "dom" for r in results)
        assert all(r.discovered_at is None for r in results)

    def test_audio_element_kind_comes_from_tag(self):
        snap = DocumentSnapshot(BASE, media=[MediaElement("audio", src="https://a.com/stream")])
        [item] = scan_document(snap)
        assert item.kind == "audio"
        assert item.url == "https://a.com/stream"


class TestLinks:
    def test_links_classified_and_non_media_dropped(self):
        snap = DocumentSnapshot(BASE, links=[
            "https://a.com/about.html",
            "/downloads/track.flac",
            "episode.srt?lang=en",
        ])
        results = scan_document(snap)
        assert urls(results) == [
            "https://site.example.com/downloads/track.flac",
            "https://site.example.com/watch/episode.srt?lang=en",
        ]
        assert [r.kind for r in results] == ["audio", "subtitle"]
        assert all(r.origin_detail == "a" for r in results)


class TestAdmission:
    @pytest.mark.parametrize("bad", [
        "javascript:alert(1)",
        "data:text/plain;base64,SGVsbG8=",
        "blob:https://site.example.com/1f2e-33",
        "JavaScript:void(0)//x.mp4",
        "data:video/mp4;base64,AAAA.mp4",
    ])
    def test_rejected_schemes_never_produce_observations(self, bad):
        snap = DocumentSnapshot(
            BASE,
            media=[MediaElement("video", src=bad, sources=[bad], tracks=[bad])],
            links=[bad],
            scripts=[
                ScriptBlock(f'var u = "{bad}";'),
                ScriptBlock(json.dumps({"src": bad}), "application/json"),
            ],
        )
        assert scan_document(snap) == []

    def test_resolution_failure_is_dropped(self):
        snap = DocumentSnapshot(BASE, links=["http://[::1/x.mp4", "https://ok.example.com/x.mp4"])
        assert urls(scan_document(snap)) == ["https://ok.example.com/x.mp4"]

    def test_relative_url_without_base_is_dropped(self):
        snap = DocumentSnapshot(None, links=["clip.mp4"])
        assert scan_document(snap) == []

    def test_resolve_candidate(self):
        assert resolve_candidate("../a.mp4", BASE) == "https://site.example.com/a.mp4"
        assert resolve_candidate("//cdn.example.com/a.mp4", BASE) == "https://cdn.example.com/a.mp4"
        assert resolve_candidate("", BASE) is None
        assert resolve_candidate(None, BASE) is None
        assert resolve_candidate(17, BASE) is None

    def test_resolved_urls_are_normalized(self):
        assert resolve_candidate("HTTPS://CDN.Example.com:443/a/../v.mp4", BASE) == "https://cdn.example.com/v.mp4"
        assert resolve_candidate("http://cdn.example.com:8080/./x/v.mp4", BASE) == "http://cdn.example.com:8080/x/v.mp4"
        assert resolve_candidate("https://cdn.example.com/a/b/..", BASE) == "https://cdn.example.com/a/"
        assert resolve_candidate("https://cdn.example.com:99999/v.mp4", BASE) is None

    def test_script_url_normalized_before_dedupe(self):
        snap = DocumentSnapshot(
            BASE,
            links=["https://cdn.example.com/v.mp4"],
            scripts=[ScriptBlock('load("https://CDN.Example.com/a/../v.mp4")')],
        )
        assert urls(scan_document(snap)) == ["https://cdn.example.com/v.mp4"]


class TestScriptHeuristics:
    def test_inline_script_urls(self):
        script = """
            var player = {file: "https://cdn.example.com/hls/master.m3u8?token=abc&e=1"};
            var poster = "https://cdn.example.com/poster.jpg";
            loadSubs('https://cdn.example.com/subs/en.vtt');
        """
        results = scan_document(DocumentSnapshot(BASE, scripts=[ScriptBlock(script)]))
        assert urls(results) == [
            "https://cdn.example.com/hls/master.m3u8?token=abc&e=1",
            "https://cdn.example.com/subs/en.vtt",
        ]
        assert [r.origin_detail for r in results] == ["script", "script"]

    def test_json_typed_scripts_skip_raw_text_scan(self):
        # not valid JSON, so only the raw-text heuristic could find it
        text = 'broken { "https://cdn.example.com/a.mp4"'
        for type_ in ("application/json", "application/ld+json"):
            snap = DocumentSnapshot(BASE, scripts=[ScriptBlock(text, type_)])
            assert scan_document(snap) == []

    def test_json_values_are_walked(self):
        data = {
            "video": {"sources": [{"file": "https://cdn.example.com/a.mp4"}, {"file": "/b.m3u8"}]},
            "title": "not a url",
            "count": 3,
        }
        snap = DocumentSnapshot(BASE, scripts=[ScriptBlock(json.dumps(data), "application/ld+json")])
        results = scan_document(snap)
        assert urls(results) == ["https://cdn.example.com/a.mp4", "https://site.example.com/b.m3u8"]
        assert all(r.origin_detail == "json-data" for r in results)

    def test_json_walk_is_depth_capped(self):
        shallow = {"a": {"b": "https://cdn.example.com/shallow.mp4"}}
        deep = "https://cdn.example.com/deep.mp4"
        for _ in range(20):
            deep = {"next": deep}
        snap = DocumentSnapshot(BASE, scripts=[
            ScriptBlock(json.dumps(shallow), "application/json"),
            ScriptBlock(json.dumps(deep), "application/json"),
        ])
        assert urls(scan_document(snap)) == ["https://cdn.example.com/shallow.mp4"]

    def test_invalid_json_is_skipped(self):
        snap = DocumentSnapshot(BASE, scripts=[
            ScriptBlock("{not json", "application/json"),
            ScriptBlock('["https://cdn.example.com/ok.mp3"]', "application/json"),
        ])
        assert urls(scan_document(snap)) == ["https://cdn.example.com/ok.mp3"]


class TestOrderingAndDedup:
    def test_first_occurrence_wins(self):
        snap = DocumentSnapshot(
            BASE,
            media=[MediaElement("video", src="https://cdn.example.com/a.mp4")],
            links=["https://cdn.example.com/a.mp4", "https://cdn.example.com/b.mp3"],
            scripts=[ScriptBlock('x = "https://cdn.example.com/b.mp3"; y = "https://cdn.example.com/c.vtt"')],
        )
        results = scan_document(snap)
        assert urls(results) == [
            "https://cdn.example.com/a.mp4",
            "https://cdn.example.com/b.mp3",
            "https://cdn.example.com/c.vtt",
        ]
        assert [r.origin_detail for r in results] == ["video", "a", "script"]


class TestSnapshotFromDict:
    def test_collector_payload(self):
        data = {
            "base_uri": BASE,
            "media": [{"tag": "VIDEO", "src": "a.mp4", "sources": ["b.webm"], "tracks": []}],
            "links": ["c.mp3", 5],
            "scripts": [{"type": "", "text": "var u='https://x.example.com/d.m3u8'"}],
        }
        results = scan_document(DocumentSnapshot.from_dict(data))
        assert [r.url.rsplit("/", 1)[1] for r in results] == ["a.mp4", "b.webm", "c.mp3", "d.m3u8"]

    @pytest.mark.parametrize("data", [None, [], "x", {"media": [None, {"src": "a.mp4"}], "scripts": ["x"]}])
    def test_malformed_payload_yields_no_results(self, data):
        assert scan_document(DocumentSnapshot.from_dict(data)) == []

    def test_collector_guards_repeat_injection(self):
        assert "window.__mediascoutInjected" in COLLECTOR_JS
