"""JSON reshaping of domain models for the HTTP surface.

Response keys are camelCase to stay compatible with existing clients of
the service.  Every format object carries ``streamUrl`` /
``downloadUrl`` links back to ``/stream/{id}`` so clients never depend
on upstream URLs, which expire and are locked to the server's IP.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from yt_relay.core.models import (
    ClassifiedFormat,
    FormatCatalog,
    FormatCategory,
    RawFormatDescriptor,
    SearchResult,
    VideoInfo,
)


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------

def stream_url(base_url: str, video_id: str, **params: str | None) -> str:
    """Build ``<base>/stream/<id>?<params>``; ``None`` params are dropped."""
    query = urlencode({k: v for k, v in params.items() if v is not None})
    url = f"{base_url.rstrip('/')}/stream/{video_id}"
    return f"{url}?{query}" if query else url


def format_links(base_url: str, video_id: str, itag: str) -> dict[str, str]:
    return {
        "streamUrl": stream_url(base_url, video_id, itag=itag),
        "downloadUrl": stream_url(base_url, video_id, itag=itag, download="1"),
    }


# ---------------------------------------------------------------------------
# Formats
# ---------------------------------------------------------------------------

def format_to_dict(fmt: ClassifiedFormat) -> dict[str, Any]:
    raw = fmt.raw
    data: dict[str, Any] = {
        "type": fmt.category.value,
        "itag": raw.itag,
        "quality": raw.quality_label,
        "ext": fmt.ext,
        "mimeType": raw.mime_type,
        "bitrate": fmt.bitrate_kbps,
        "contentLength": raw.content_length,
        "audioIncluded": fmt.category is not FormatCategory.VIDEO_ONLY,
    }
    if fmt.category is FormatCategory.AUDIO_ONLY:
        data["audioQuality"] = raw.audio_quality
    else:
        data.update(fps=raw.fps, width=raw.width, height=raw.height)
    return data


def legacy_format_to_dict(raw: RawFormatDescriptor) -> dict[str, Any]:
    """The minimal ``{itag, quality, mimeType, url}`` shape of ``/info``."""
    return {
        "itag": raw.itag,
        "quality": raw.quality_label,
        "mimeType": raw.mime_type,
        "url": raw.url,
    }


def catalog_to_dict(
    catalog: FormatCatalog,
    *,
    base_url: str | None = None,
    video_id: str | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Serialize the three buckets, optionally with stream links."""

    def _bucket(formats: tuple[ClassifiedFormat, ...]) -> list[dict[str, Any]]:
        items = []
        for fmt in formats:
            item = format_to_dict(fmt)
            if base_url is not None and video_id is not None:
                item.update(format_links(base_url, video_id, fmt.itag))
            items.append(item)
        return items

    return {
        "merged": _bucket(catalog.merged),
        "videoOnly": _bucket(catalog.video_only),
        "audioOnly": _bucket(catalog.audio_only),
    }


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------

def legacy_info_to_dict(info: VideoInfo) -> dict[str, Any]:
    return {
        "title": info.title,
        "thumbnails": [
            {"url": t.url, "width": t.width, "height": t.height}
            for t in info.thumbnails
        ],
        "formats": [legacy_format_to_dict(raw) for raw in info.formats],
    }


def video_summary(info: VideoInfo) -> dict[str, Any]:
    return {
        "id": info.id,
        "title": info.title,
        "thumbnail": info.thumbnail,
        "duration": info.duration,
        "author": info.author,
        "channelId": info.channel_id,
        "viewCount": info.view_count,
        "live": info.is_live,
        "hlsUrl": info.manifest_url,
    }


def video_details(info: VideoInfo) -> dict[str, Any]:
    """:func:`video_summary` plus description and upload date."""
    data = video_summary(info)
    data["description"] = info.description
    data["uploadDate"] = info.upload_date
    return data


def quick_stream_links(base_url: str, info: VideoInfo) -> dict[str, str | None]:
    """Shortcut links that let ``/stream`` pick the format itself."""
    if info.is_live:
        return {"hls": info.manifest_url}
    return {
        "best": stream_url(base_url, info.id, type="merged", quality="best"),
        "bestDownload": stream_url(base_url, info.id, type="merged", quality="best", download="1"),
        "bestVideo": stream_url(base_url, info.id, type="video", quality="best"),
        "hd720": stream_url(base_url, info.id, type="video", quality="720p"),
        "sd360": stream_url(base_url, info.id, type="merged", quality="360p"),
        "audio": stream_url(base_url, info.id, type="audio"),
        "audioDownload": stream_url(base_url, info.id, type="audio", download="1"),
    }


def search_result_to_dict(result: SearchResult) -> dict[str, str]:
    return {
        "id": result.id,
        "title": result.title,
        "thumbnail": result.thumbnail,
        "duration": result.duration,
        "author": result.author,
        "viewCount": result.view_count,
        "publishedTime": result.published_time,
    }
