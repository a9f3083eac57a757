"""Domain models for yt-relay.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access.  They carry zero I/O, zero dependencies on
external packages, and are created fresh for every inbound request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NewType


VideoId = NewType("VideoId", str)
"""Canonical 11-character YouTube video identifier."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class FormatSource(str, Enum):
    """Which upstream list a format was reported in."""

    ADAPTIVE = "adaptive"
    """Separate video-only or audio-only stream."""

    COMBINED = "combined"
    """Muxed stream carrying both audio and video."""


class FormatCategory(str, Enum):
    """Bucket a classified format belongs to."""

    VIDEO_ONLY = "video_only"
    AUDIO_ONLY = "audio_only"
    MERGED = "merged"


class OutputType(str, Enum):
    """Output type requested by a stream client."""

    VIDEO = "video"
    AUDIO = "audio"
    MERGED = "merged"


# ---------------------------------------------------------------------------
# Format descriptors
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RawFormatDescriptor:
    """One format entry as reported by the external info source.

    This is the single normalized shape produced at the provider
    boundary; nothing downstream looks at provider-specific field names.
    """

    itag: str
    """Backend identifier for this encoding (YouTube itag / yt-dlp ``format_id``)."""

    mime_type: str
    """Full MIME type, possibly with a ``codecs`` parameter.  May be empty."""

    source: FormatSource = FormatSource.ADAPTIVE
    """Upstream list the entry arrived from."""

    quality_label: str | None = None
    """Human-readable quality label (e.g. ``720p60``)."""

    fps: int | None = None
    bitrate: int | None = None
    """Bitrate in bits per second."""

    width: int | None = None
    height: int | None = None
    content_length: int | None = None
    """Size in bytes, when known."""

    audio_quality: str | None = None
    url: str | None = None
    """Playable URL, already deciphered by the backend when available."""

    signature_cipher: str | None = None
    """Cipher payload for formats whose URL still needs deciphering."""

    http_headers: tuple[tuple[str, str], ...] = ()
    """Headers the backend requires when fetching :attr:`url`."""


@dataclass(frozen=True, slots=True)
class ClassifiedFormat:
    """A :class:`RawFormatDescriptor` annotated with its catalog bucket."""

    raw: RawFormatDescriptor
    category: FormatCategory
    ext: str
    """File extension derived from the MIME type."""

    bitrate_kbps: int | None
    """Bitrate rounded to whole kbps, or ``None`` if unknown."""

    @property
    def itag(self) -> str:
        return self.raw.itag

    @property
    def height(self) -> int | None:
        return self.raw.height

    @property
    def mime_type(self) -> str:
        return self.raw.mime_type


@dataclass(frozen=True, slots=True)
class FormatCatalog:
    """Three quality-ordered buckets of classified formats.

    Every format belongs to exactly one bucket.  Video buckets are
    ordered by descending height, the audio bucket by descending
    bitrate.
    """

    video_only: tuple[ClassifiedFormat, ...] = ()
    audio_only: tuple[ClassifiedFormat, ...] = ()
    merged: tuple[ClassifiedFormat, ...] = ()

    def all_formats(self) -> tuple[ClassifiedFormat, ...]:
        """Return every format: merged, then video-only, then audio-only."""
        return self.merged + self.video_only + self.audio_only

    def find(self, itag: str) -> ClassifiedFormat | None:
        """Return the format whose identifier equals *itag*, if any."""
        for fmt in self.all_formats():
            if fmt.itag == itag:
                return fmt
        return None

    def available_itags(self) -> tuple[str, ...]:
        return tuple(fmt.itag for fmt in self.all_formats())

    def __len__(self) -> int:
        return len(self.video_only) + len(self.audio_only) + len(self.merged)

    def __bool__(self) -> bool:
        return len(self) > 0


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class QualityHint:
    """Parsed quality preference.

    Exactly one of the forms applies: ``best``, ``worst``, or a maximum
    height in pixels.
    """

    mode: str
    """``"best"``, ``"worst"`` or ``"max_height"``."""

    max_height: int | None = None


@dataclass(frozen=True, slots=True)
class SelectionCriteria:
    """What a stream client asked for."""

    output_type: OutputType = OutputType.MERGED
    quality: str = "best"
    explicit_itag: str | None = None


@dataclass(frozen=True, slots=True)
class LiveStreamDescriptor:
    """Selector result for live content: redirect to the HLS manifest."""

    manifest_url: str | None
    is_live: bool = True


# ---------------------------------------------------------------------------
# Video metadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Thumbnail:
    url: str
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True, slots=True)
class VideoInfo:
    """Top-level metadata and normalized formats for a single video."""

    id: VideoId
    title: str
    description: str = ""
    thumbnail: str = ""
    """Best available thumbnail URL."""

    thumbnails: tuple[Thumbnail, ...] = ()
    duration: int = 0
    """Duration in seconds; ``0`` when unknown or live."""

    author: str = ""
    channel_id: str | None = None
    view_count: int = 0
    upload_date: str | None = None
    is_live: bool = False
    manifest_url: str | None = None
    """HLS manifest for live content."""

    formats: tuple[RawFormatDescriptor, ...] = field(default=())

    def live_descriptor(self) -> LiveStreamDescriptor | None:
        """Return the live descriptor, or ``None`` for on-demand videos."""
        if not self.is_live:
            return None
        return LiveStreamDescriptor(manifest_url=self.manifest_url)


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One video entry returned by a search query."""

    id: str
    title: str
    thumbnail: str = ""
    duration: str = ""
    """Human-readable duration (e.g. ``3:32``)."""

    author: str = ""
    view_count: str = ""
    published_time: str = ""
