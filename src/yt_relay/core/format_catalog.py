"""Pure format classification and catalog building.

Every function in this module is a **pure** transformation — no I/O,
no side effects, fully deterministic, and trivially unit-testable.

Pipeline order (enforced by :func:`build_catalog`):

1. **Classify** — tag each format video-only, audio-only or merged, and
   drop formats that signal neither audio nor video.
2. **Partition** — place each classified format in exactly one bucket.
3. **Sort** — video buckets by height desc, audio by bitrate desc.
   Sorting is stable: equal keys keep their input order.
"""

from __future__ import annotations

from collections.abc import Sequence

from yt_relay.core.models import (
    ClassifiedFormat,
    FormatCatalog,
    FormatCategory,
    FormatSource,
    RawFormatDescriptor,
)
from yt_relay.exceptions import NoUsableFormatsError


_MIME_EXTENSIONS: dict[str, str] = {
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/3gpp": "3gp",
    "audio/mp4": "m4a",
    "audio/webm": "webm",
    "audio/opus": "opus",
    "audio/aac": "aac",
}

_AUDIO_CODEC_PREFIXES: tuple[str, ...] = (
    "mp4a", "opus", "vorbis", "ac-3", "ec-3", "flac", "mp3", "aac",
)
_VIDEO_CODEC_PREFIXES: tuple[str, ...] = (
    "avc1", "avc3", "av01", "vp9", "vp09", "vp8", "hev1", "hvc1", "mp4v",
)


# ---------------------------------------------------------------------------
# MIME helpers
# ---------------------------------------------------------------------------

def base_mime(mime_type: str) -> str:
    """Strip parameters: ``'video/mp4; codecs="avc1"'`` → ``'video/mp4'``."""
    return mime_type.split(";", 1)[0].strip().lower()


def mime_codecs(mime_type: str) -> tuple[str, ...]:
    """Return the entries of the ``codecs`` MIME parameter, lower-cased."""
    for param in mime_type.split(";")[1:]:
        name, _, value = param.partition("=")
        if name.strip().lower() == "codecs":
            return tuple(
                codec.strip().lower()
                for codec in value.strip().strip('"').split(",")
                if codec.strip()
            )
    return ()


def ext_from_mime(mime_type: str) -> str:
    """Map a MIME type to a file extension.

    Known types come from a fixed table; otherwise the subtype token is
    used, and ``"unknown"`` when no subtype can be parsed.
    """
    if not mime_type:
        return "unknown"
    base = base_mime(mime_type)
    if base in _MIME_EXTENSIONS:
        return _MIME_EXTENSIONS[base]
    _, _, subtype = base.partition("/")
    return subtype or "unknown"


def _carries_audio_and_video(mime_type: str) -> bool:
    codecs = mime_codecs(mime_type)
    has_audio = any(c.startswith(_AUDIO_CODEC_PREFIXES) for c in codecs)
    has_video = any(c.startswith(_VIDEO_CODEC_PREFIXES) for c in codecs)
    return has_audio and has_video


# ---------------------------------------------------------------------------
# 1. Classify
# ---------------------------------------------------------------------------

def categorize(raw: RawFormatDescriptor) -> FormatCategory | None:
    """Return the bucket for *raw*, or ``None`` when it must be dropped."""
    base = base_mime(raw.mime_type)
    is_video = base.startswith("video/")
    is_audio = base.startswith("audio/")

    if raw.source is FormatSource.COMBINED and (is_video or is_audio):
        return FormatCategory.MERGED
    if _carries_audio_and_video(raw.mime_type):
        return FormatCategory.MERGED
    if is_video:
        return FormatCategory.VIDEO_ONLY
    if is_audio:
        return FormatCategory.AUDIO_ONLY
    return None


def classify_format(raw: RawFormatDescriptor) -> ClassifiedFormat | None:
    """Annotate *raw* with its category, extension and kbps bitrate."""
    category = categorize(raw)
    if category is None:
        return None
    return ClassifiedFormat(
        raw=raw,
        category=category,
        ext=ext_from_mime(raw.mime_type),
        bitrate_kbps=round(raw.bitrate / 1000) if raw.bitrate else None,
    )


# ---------------------------------------------------------------------------
# 3. Sort
# ---------------------------------------------------------------------------

def sort_by_height(formats: Sequence[ClassifiedFormat]) -> list[ClassifiedFormat]:
    """Sort by height desc; a missing height counts as ``0``."""
    return sorted(formats, key=lambda fmt: -(fmt.raw.height or 0))


def sort_by_bitrate(formats: Sequence[ClassifiedFormat]) -> list[ClassifiedFormat]:
    """Sort by bitrate desc; a missing bitrate counts as ``0``."""
    return sorted(formats, key=lambda fmt: -(fmt.raw.bitrate or 0))


# ---------------------------------------------------------------------------
# Composite pipeline
# ---------------------------------------------------------------------------

def build_catalog(
    raw_formats: Sequence[RawFormatDescriptor],
    *,
    is_live: bool = False,
) -> FormatCatalog:
    """Run the full classify → partition → sort pipeline.

    Raises
    ------
    NoUsableFormatsError
        When no format survives classification and the video is not live.
    """
    buckets: dict[FormatCategory, list[ClassifiedFormat]] = {
        category: [] for category in FormatCategory
    }
    for raw in raw_formats:
        classified = classify_format(raw)
        if classified is not None:
            buckets[classified.category].append(classified)

    catalog = FormatCatalog(
        video_only=tuple(sort_by_height(buckets[FormatCategory.VIDEO_ONLY])),
        audio_only=tuple(sort_by_bitrate(buckets[FormatCategory.AUDIO_ONLY])),
        merged=tuple(sort_by_height(buckets[FormatCategory.MERGED])),
    )

    if not catalog and not is_live:
        raise NoUsableFormatsError(
            "No usable formats found for this video.",
            hint="The video may be restricted or unavailable.",
        )
    return catalog
