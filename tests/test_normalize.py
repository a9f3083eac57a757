"""Tests for boundary normalization (core/normalize.py).

Covers the three format shapes backends report (InnerTube camelCase,
its snake_case rendition, yt-dlp) and the video-level fallbacks.
"""

from __future__ import annotations

from typing import Any

import pytest

from yt_relay.core.models import FormatSource, VideoId
from yt_relay.core.normalize import (
    collect_formats,
    normalize_format,
    normalize_formats,
    normalize_search_entries,
    normalize_video_info,
    synthesize_mime_type,
)

VIDEO_ID = VideoId("dQw4w9WgXcQ")


# ---------------------------------------------------------------------------
# synthesize_mime_type
# ---------------------------------------------------------------------------

class TestSynthesizeMimeType:
    def test_video_with_audio(self) -> None:
        assert (
            synthesize_mime_type("mp4", "avc1.64001F", "mp4a.40.2")
            == 'video/mp4; codecs="avc1.64001F, mp4a.40.2"'
        )

    def test_m4a_audio_uses_mp4_container(self) -> None:
        assert synthesize_mime_type("m4a", None, "mp4a.40.2") == 'audio/mp4; codecs="mp4a.40.2"'

    def test_no_codecs(self) -> None:
        assert synthesize_mime_type("mhtml", None, None) == ""


# ---------------------------------------------------------------------------
# normalize_format
# ---------------------------------------------------------------------------

class TestNormalizeFormat:
    def test_innertube_shape(self) -> None:
        raw = normalize_format(
            {
                "itag": 22,
                "mimeType": 'video/mp4; codecs="avc1.64001F, mp4a.40.2"',
                "qualityLabel": "720p",
                "bitrate": 1_500_000,
                "contentLength": "12345",
                "width": 1280,
                "height": 720,
                "url": "https://cdn.example/22",
            },
            source=FormatSource.COMBINED,
        )
        assert raw is not None
        assert raw.itag == "22"
        assert raw.quality_label == "720p"
        assert raw.bitrate == 1_500_000
        assert raw.content_length == 12345
        assert raw.source is FormatSource.COMBINED

    def test_snake_case_shape(self) -> None:
        raw = normalize_format(
            {
                "itag": "251",
                "mime_type": 'audio/webm; codecs="opus"',
                "audio_quality": "AUDIO_QUALITY_MEDIUM",
                "content_length": 3_000_000,
                "signature_cipher": "s=abc&url=x",
            }
        )
        assert raw is not None
        assert raw.mime_type == 'audio/webm; codecs="opus"'
        assert raw.audio_quality == "AUDIO_QUALITY_MEDIUM"
        assert raw.url is None
        assert raw.signature_cipher == "s=abc&url=x"

    def test_ytdlp_shape(self, make_format: Any) -> None:
        raw = normalize_format(make_format("137", height=1080, tbr=4000.5))
        assert raw is not None
        assert raw.itag == "137"
        assert raw.mime_type == 'video/mp4; codecs="avc1.640028"'
        assert raw.source is FormatSource.ADAPTIVE
        assert raw.bitrate == 4_000_500
        assert raw.quality_label == "1080p"
        assert raw.http_headers == (("User-Agent", "test-agent"),)

    def test_ytdlp_muxed_is_combined(self, make_format: Any) -> None:
        raw = normalize_format(make_format("18", acodec="mp4a.40.2", height=360))
        assert raw is not None
        assert raw.source is FormatSource.COMBINED

    def test_ytdlp_numeric_quality_is_not_a_label(self) -> None:
        raw = normalize_format({"format_id": "140", "ext": "m4a", "acodec": "mp4a.40.2", "quality": 3})
        assert raw is not None
        assert raw.quality_label is None

    def test_filesize_approx_is_not_a_content_length(self, make_format: Any) -> None:
        raw = normalize_format(make_format("136", filesize=None, filesize_approx=777))
        assert raw is not None
        assert raw.content_length is None

    def test_exact_filesize_wins(self, make_format: Any) -> None:
        raw = normalize_format(make_format("136", filesize=500, filesize_approx=777))
        assert raw is not None
        assert raw.content_length == 500

    @pytest.mark.parametrize("protocol", ["m3u8", "m3u8_native", "http_dash_segments", "mhtml"])
    def test_non_direct_protocols_are_dropped(self, make_format: Any, protocol: str) -> None:
        fmt = make_format("96", acodec="mp4a.40.2", protocol=protocol)
        assert normalize_format(fmt) is None

    @pytest.mark.parametrize("protocol", ["http", "https"])
    def test_direct_protocols_are_kept(self, make_format: Any, protocol: str) -> None:
        raw = normalize_format(make_format("18", acodec="mp4a.40.2", protocol=protocol))
        assert raw is not None
        assert raw.itag == "18"

    @pytest.mark.parametrize("value", [None, "x", 5, {"mimeType": "video/mp4"}])
    def test_rejects_unusable_entries(self, value: object) -> None:
        assert normalize_format(value) is None

    def test_normalize_formats_skips_malformed(self, make_format: Any) -> None:
        result = normalize_formats([make_format("137"), "junk", {}])
        assert [r.itag for r in result] == ["137"]

    def test_normalize_formats_non_list(self) -> None:
        assert normalize_formats(None) == []


# ---------------------------------------------------------------------------
# collect_formats
# ---------------------------------------------------------------------------

class TestCollectFormats:
    def test_streaming_data_lists_are_tagged(self) -> None:
        info = {
            "streamingData": {
                "formats": [{"itag": 18, "mimeType": 'video/mp4; codecs="avc1, mp4a"'}],
                "adaptiveFormats": [
                    {"itag": 137, "mimeType": 'video/mp4; codecs="avc1"'},
                    {"itag": 140, "mimeType": 'audio/mp4; codecs="mp4a"'},
                ],
            }
        }
        result = collect_formats(info)
        assert [(r.itag, r.source) for r in result] == [
            ("18", FormatSource.COMBINED),
            ("137", FormatSource.ADAPTIVE),
            ("140", FormatSource.ADAPTIVE),
        ]

    def test_flat_formats_list(self, ytdlp_info: dict[str, Any]) -> None:
        itags = [r.itag for r in collect_formats(ytdlp_info)]
        assert itags == ["18", "137", "136", "135", "140", "251"]


# ---------------------------------------------------------------------------
# normalize_video_info
# ---------------------------------------------------------------------------

class TestNormalizeVideoInfo:
    def test_fields(self, ytdlp_info: dict[str, Any]) -> None:
        info = normalize_video_info(VIDEO_ID, ytdlp_info)
        assert info.id == VIDEO_ID
        assert info.title == "Never Gonna Give You Up"
        assert info.author == "Rick Astley"
        assert info.duration == 212
        assert info.view_count == 1_500_000_000
        assert info.is_live is False
        assert info.manifest_url is None
        assert info.thumbnail == "https://i.ytimg.com/vi/x/hq.jpg"

    def test_thumbnail_fallback(self) -> None:
        info = normalize_video_info(VIDEO_ID, {"title": "t"})
        assert info.thumbnail == f"https://i.ytimg.com/vi/{VIDEO_ID}/maxresdefault.jpg"
        assert info.formats == ()

    def test_live_manifest_from_formats(self, live_info: dict[str, Any]) -> None:
        info = normalize_video_info(VIDEO_ID, live_info)
        assert info.is_live is True
        assert info.manifest_url == "https://manifest.example/master.m3u8"
        assert info.live_descriptor() is not None
        assert info.formats == ()

    def test_was_live_is_on_demand(self) -> None:
        info = normalize_video_info(VIDEO_ID, {"title": "t", "live_status": "was_live"})
        assert info.is_live is False
        assert info.live_descriptor() is None


# ---------------------------------------------------------------------------
# normalize_search_entries
# ---------------------------------------------------------------------------

class TestNormalizeSearchEntries:
    def test_entries(self) -> None:
        entries = [
            {
                "id": "dQw4w9WgXcQ",
                "title": "Song",
                "duration": 3725,
                "channel": "Artist",
                "view_count": 42,
                "thumbnails": [{"url": "https://i.ytimg.com/a.jpg"}],
            },
            {"title": "no id"},
            {"id": "aaaaaaaaaaa", "title": "Short", "duration": 65},
        ]
        results = normalize_search_entries(entries, limit=10)
        assert [r.id for r in results] == ["dQw4w9WgXcQ", "aaaaaaaaaaa"]
        assert results[0].duration == "1:02:05"
        assert results[0].view_count == "42"
        assert results[0].thumbnail == "https://i.ytimg.com/a.jpg"
        assert results[1].duration == "1:05"

    def test_limit(self) -> None:
        entries = [{"id": f"id{i:09d}", "title": str(i)} for i in range(5)]
        assert len(normalize_search_entries(entries, limit=2)) == 2
