"""Boundary normalization of raw format and video metadata dicts.

Backends report formats in several shapes: the InnerTube player
response (``mimeType``, ``qualityLabel``), its snake_case rendition
(``mime_type``, ``quality_label``), and yt-dlp's own format dicts
(``format_id``, ``vcodec``, ``acodec``, ``tbr``).  This module is the
**only** place that knows about those variants; everything downstream
consumes :class:`~yt_relay.core.models.RawFormatDescriptor`.

Every function here is pure and deterministic.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from yt_relay.core.models import (
    FormatSource,
    RawFormatDescriptor,
    SearchResult,
    Thumbnail,
    VideoId,
    VideoInfo,
)

# yt-dlp container extension → MIME subtype.
_CONTAINER_SUBTYPES: dict[str, str] = {
    "m4a": "mp4",
    "mp4": "mp4",
    "webm": "webm",
    "3gp": "3gpp",
    "weba": "webm",
}

_LIVE_PROTOCOLS: tuple[str, ...] = ("m3u8", "m3u8_native")

# Only these yt-dlp protocols carry the media itself; the rest are
# manifests or segment lists.
_DIRECT_PROTOCOLS: frozenset[str] = frozenset({"http", "https"})


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among *keys*."""
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_int(value: Any) -> int | None:
    """Coerce numeric-looking values (``"1080"``, ``29.97``) to ``int``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return round(float(value))
    except (TypeError, ValueError):
        return None


def _as_str(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


def _codec(value: Any) -> str | None:
    """yt-dlp reports missing codecs as ``"none"``; map that to ``None``."""
    if not value or value == "none":
        return None
    return str(value)


# ---------------------------------------------------------------------------
# Formats
# ---------------------------------------------------------------------------

def synthesize_mime_type(
    ext: str | None,
    vcodec: str | None,
    acodec: str | None,
) -> str:
    """Build a MIME type for a yt-dlp format, which reports none itself.

    Returns ``""`` when the format carries neither audio nor video.
    """
    if vcodec is None and acodec is None:
        return ""
    subtype = _CONTAINER_SUBTYPES.get((ext or "").lower(), (ext or "").lower())
    if not subtype:
        return ""
    if vcodec is not None:
        codecs = ", ".join(c for c in (vcodec, acodec) if c)
        return f'video/{subtype}; codecs="{codecs}"'
    return f'audio/{subtype}; codecs="{acodec}"'


def _is_ytdlp_shape(raw: Mapping[str, Any]) -> bool:
    return "format_id" in raw or "vcodec" in raw or "acodec" in raw


def _bitrate(raw: Mapping[str, Any], ytdlp: bool) -> int | None:
    if not ytdlp:
        return _as_int(raw.get("bitrate"))
    # yt-dlp reports kbit/s.
    kbps = _first(raw, "tbr", "abr", "vbr")
    if kbps is None:
        return None
    try:
        return round(float(kbps) * 1000)
    except (TypeError, ValueError):
        return None


def _headers(raw: Mapping[str, Any]) -> tuple[tuple[str, str], ...]:
    headers = raw.get("http_headers")
    if not isinstance(headers, Mapping):
        return ()
    return tuple((str(k), str(v)) for k, v in headers.items())


def normalize_format(
    raw: object,
    *,
    source: FormatSource | None = None,
) -> RawFormatDescriptor | None:
    """Convert one backend format dict into a :class:`RawFormatDescriptor`.

    Parameters
    ----------
    raw:
        The backend's format entry.  Non-mapping values are rejected.
    source:
        The list the entry came from.  When ``None`` the source is
        inferred: yt-dlp formats carrying both codecs are combined,
        everything else adaptive.

    Returns ``None`` for entries that have no identifier, and for
    yt-dlp entries delivered over a non-direct protocol (HLS, DASH
    segments): those URLs point at playlists, not media.
    """
    if not isinstance(raw, Mapping):
        return None

    itag = _as_str(_first(raw, "itag", "format_id"))
    if itag is None:
        return None

    ytdlp = _is_ytdlp_shape(raw)
    protocol = _as_str(raw.get("protocol"))
    if ytdlp and protocol is not None and protocol not in _DIRECT_PROTOCOLS:
        return None

    if ytdlp and _first(raw, "mimeType", "mime_type") is None:
        vcodec = _codec(raw.get("vcodec"))
        acodec = _codec(raw.get("acodec"))
        mime_type = synthesize_mime_type(_as_str(raw.get("ext")), vcodec, acodec)
        inferred = (
            FormatSource.COMBINED
            if vcodec is not None and acodec is not None
            else FormatSource.ADAPTIVE
        )
    else:
        mime_type = str(_first(raw, "mimeType", "mime_type") or "")
        inferred = FormatSource.ADAPTIVE

    # yt-dlp's ``quality`` is a numeric rank, not a label.
    label_keys = ("format_note",) if ytdlp else ("quality",)
    quality_label = _as_str(_first(raw, "qualityLabel", "quality_label", *label_keys))

    return RawFormatDescriptor(
        itag=itag,
        mime_type=mime_type,
        source=source if source is not None else inferred,
        quality_label=quality_label,
        fps=_as_int(raw.get("fps")),
        bitrate=_bitrate(raw, ytdlp),
        width=_as_int(raw.get("width")),
        height=_as_int(raw.get("height")),
        content_length=_as_int(
            _first(raw, "contentLength", "content_length", "filesize")
        ),
        audio_quality=_as_str(_first(raw, "audioQuality", "audio_quality")),
        url=_as_str(raw.get("url")),
        signature_cipher=_as_str(
            _first(raw, "signatureCipher", "signature_cipher", "cipher")
        ),
        http_headers=_headers(raw),
    )


def normalize_formats(
    entries: object,
    *,
    source: FormatSource | None = None,
) -> list[RawFormatDescriptor]:
    """Normalize a list of format entries, skipping malformed ones."""
    if not isinstance(entries, list):
        return []
    result: list[RawFormatDescriptor] = []
    for entry in entries:
        descriptor = normalize_format(entry, source=source)
        if descriptor is not None:
            result.append(descriptor)
    return result


def collect_formats(info: Mapping[str, Any]) -> list[RawFormatDescriptor]:
    """Pull every format out of an info dict, whatever its shape.

    InnerTube ``streamingData`` keeps muxed and adaptive formats in two
    lists; yt-dlp merges them into a single ``formats`` list.
    """
    streaming = _first(info, "streamingData", "streaming_data")
    if isinstance(streaming, Mapping):
        combined = normalize_formats(
            streaming.get("formats"), source=FormatSource.COMBINED
        )
        adaptive = normalize_formats(
            _first(streaming, "adaptiveFormats", "adaptive_formats"),
            source=FormatSource.ADAPTIVE,
        )
        return combined + adaptive
    return normalize_formats(info.get("formats"))


# ---------------------------------------------------------------------------
# Video metadata
# ---------------------------------------------------------------------------

def _thumbnails(info: Mapping[str, Any]) -> tuple[Thumbnail, ...]:
    raw = info.get("thumbnails")
    if not isinstance(raw, list):
        return ()
    thumbs: list[Thumbnail] = []
    for entry in raw:
        if isinstance(entry, Mapping) and entry.get("url"):
            thumbs.append(
                Thumbnail(
                    url=str(entry["url"]),
                    width=_as_int(entry.get("width")),
                    height=_as_int(entry.get("height")),
                )
            )
    return tuple(thumbs)


def _manifest_url(info: Mapping[str, Any]) -> str | None:
    direct = _as_str(_first(info, "manifest_url", "hls_manifest_url", "hlsManifestUrl"))
    if direct is not None:
        return direct
    formats = info.get("formats")
    if not isinstance(formats, list):
        return None
    for fmt in formats:
        if isinstance(fmt, Mapping) and fmt.get("protocol") in _LIVE_PROTOCOLS:
            return _as_str(_first(fmt, "manifest_url", "url"))
    return None


def _is_live(info: Mapping[str, Any]) -> bool:
    # ``was_live`` content is an ordinary on-demand video by now.
    return bool(info.get("is_live")) or info.get("live_status") == "is_live"


def normalize_video_info(video_id: VideoId, info: Mapping[str, Any]) -> VideoInfo:
    """Convert a backend info dict into a :class:`VideoInfo`."""
    thumbnails = _thumbnails(info)
    thumbnail = _as_str(info.get("thumbnail"))
    if thumbnail is None:
        thumbnail = (
            thumbnails[-1].url
            if thumbnails
            else f"https://i.ytimg.com/vi/{video_id}/maxresdefault.jpg"
        )

    is_live = _is_live(info)
    return VideoInfo(
        id=video_id,
        title=str(info.get("title") or ""),
        description=str(info.get("description") or ""),
        thumbnail=thumbnail,
        thumbnails=thumbnails,
        duration=_as_int(info.get("duration")) or 0,
        author=str(_first(info, "uploader", "channel", "author") or ""),
        channel_id=_as_str(info.get("channel_id")),
        view_count=_as_int(info.get("view_count")) or 0,
        upload_date=_as_str(info.get("upload_date")),
        is_live=is_live,
        manifest_url=_manifest_url(info) if is_live else None,
        formats=tuple(collect_formats(info)),
    )


def normalize_search_entries(
    entries: Iterable[object],
    limit: int,
) -> list[SearchResult]:
    """Convert flat search entries into :class:`SearchResult` objects."""
    results: list[SearchResult] = []
    for entry in entries:
        if len(results) >= limit:
            break
        if not isinstance(entry, Mapping) or not entry.get("id"):
            continue
        thumbs = _thumbnails(entry)
        results.append(
            SearchResult(
                id=str(entry["id"]),
                title=str(entry.get("title") or ""),
                thumbnail=thumbs[0].url if thumbs else str(entry.get("thumbnail") or ""),
                duration=_format_duration(entry.get("duration")),
                author=str(_first(entry, "channel", "uploader") or ""),
                view_count=_as_str(entry.get("view_count")) or "",
                published_time=str(entry.get("release_timestamp") or entry.get("upload_date") or ""),
            )
        )
    return results


def _format_duration(value: Any) -> str:
    seconds = _as_int(value)
    if seconds is None:
        return ""
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
