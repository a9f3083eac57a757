"""Shared pytest fixtures and configuration for the yt-relay test suite.

Guidelines
----------
* No internet access in any test.
* yt-dlp is mocked at the infra boundary; httpx uses ``MockTransport``.
* Core tests must be pure: no side effects.
* Coroutines are driven with ``asyncio.run``.
"""

from __future__ import annotations

from typing import Any

import pytest

VIDEO_ID = "dQw4w9WgXcQ"


def ytdlp_format(
    format_id: str,
    *,
    ext: str = "mp4",
    vcodec: str = "avc1.640028",
    acodec: str = "none",
    height: int | None = 1080,
    tbr: float | None = 2500.0,
    filesize: int | None = 1_000,
    filesize_approx: int | None = None,
    url: str | None = "https://cdn.example/media",
    format_note: str | None = None,
    protocol: str = "https",
) -> dict[str, Any]:
    """Factory for a format dict in yt-dlp's output shape."""
    return {
        "format_id": format_id,
        "ext": ext,
        "vcodec": vcodec,
        "acodec": acodec,
        "height": height,
        "width": None if height is None else height * 16 // 9,
        "fps": 30 if vcodec != "none" else None,
        "tbr": tbr,
        "filesize": filesize,
        "filesize_approx": filesize_approx,
        "url": url,
        "protocol": protocol,
        "format_note": format_note or (f"{height}p" if height else None),
        "http_headers": {"User-Agent": "test-agent"},
    }


@pytest.fixture()
def ytdlp_info() -> dict[str, Any]:
    """A realistic on-demand ``extract_info`` result.

    Like yt-dlp's real output it carries non-media entries: the mhtml
    storyboard ``sb0`` and the HLS variant ``96``, which outranks the
    muxed ``18``.  ``135`` is sized only by estimate.
    """
    return {
        "id": VIDEO_ID,
        "title": "Never Gonna Give You Up",
        "description": "Official video",
        "duration": 212,
        "uploader": "Rick Astley",
        "channel_id": "UCuAXFkgsw1L7xaCfnd5JJOw",
        "view_count": 1_500_000_000,
        "upload_date": "20091025",
        "live_status": "not_live",
        "thumbnails": [
            {"url": "https://i.ytimg.com/vi/x/default.jpg", "width": 120, "height": 90},
            {"url": "https://i.ytimg.com/vi/x/hq.jpg", "width": 480, "height": 360},
        ],
        "formats": [
            ytdlp_format("18", acodec="mp4a.40.2", height=360, tbr=500.0),
            ytdlp_format("137", height=1080, tbr=4000.0),
            ytdlp_format("136", height=720, tbr=2000.0),
            ytdlp_format("135", height=480, tbr=1000.0, filesize=None, filesize_approx=9_000_000),
            ytdlp_format("140", ext="m4a", vcodec="none", acodec="mp4a.40.2", height=None, tbr=129.5),
            ytdlp_format("251", ext="webm", vcodec="none", acodec="opus", height=None, tbr=160.0),
            ytdlp_format(
                "sb0", ext="mhtml", vcodec="none", acodec="none", height=None, tbr=None,
                protocol="mhtml",
            ),
            ytdlp_format(
                "96", acodec="mp4a.40.2", height=1080, tbr=4500.0, filesize=None,
                protocol="m3u8_native", url="https://manifest.googlevideo.example/96/index.m3u8",
            ),
        ],
    }


@pytest.fixture()
def live_info() -> dict[str, Any]:
    return {
        "id": VIDEO_ID,
        "title": "Lofi radio",
        "is_live": True,
        "live_status": "is_live",
        "formats": [
            {
                "format_id": "95",
                "ext": "mp4",
                "vcodec": "avc1.4d401f",
                "acodec": "mp4a.40.2",
                "protocol": "m3u8_native",
                "url": "https://manifest.example/95.m3u8",
                "manifest_url": "https://manifest.example/master.m3u8",
            },
        ],
    }


@pytest.fixture()
def make_format():
    """Expose :func:`ytdlp_format` to tests."""
    return ytdlp_format
