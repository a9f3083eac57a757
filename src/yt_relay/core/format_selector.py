"""Deterministic format selection over a :class:`FormatCatalog`.

Two states:

* **LIVE**: the selector short-circuits to the HLS manifest.
* **VOD**: an explicit identifier wins; otherwise the requested output
  type and quality hint pick from the matching bucket.

Selection is total: every ``(type, quality)`` combination returns a
format or raises a typed :class:`~yt_relay.exceptions.YtRelayError`.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from yt_relay.core.models import (
    ClassifiedFormat,
    FormatCatalog,
    FormatCategory,
    LiveStreamDescriptor,
    OutputType,
    QualityHint,
    SelectionCriteria,
)
from yt_relay.exceptions import (
    FormatNotFoundError,
    FormatSelectionError,
    InvalidInputError,
    InvalidQualityError,
    LiveStreamUnavailableError,
)

_HEIGHT_HINT_RE = re.compile(r"^(\d{1,5})p?$")

BEST = QualityHint(mode="best")
WORST = QualityHint(mode="worst")


def parse_quality_hint(value: str | None) -> QualityHint:
    """Parse ``best``, ``worst``, ``720p`` or ``720`` (case-insensitive).

    ``None`` and the empty string mean ``best``.
    """
    normalized = (value or "best").strip().lower()
    if normalized == "best":
        return BEST
    if normalized == "worst":
        return WORST
    match = _HEIGHT_HINT_RE.match(normalized)
    if match is None:
        raise InvalidQualityError(
            f"Invalid quality: {value}",
            hint="Use 'best', 'worst', or a height such as '720p'.",
        )
    return QualityHint(mode="max_height", max_height=int(match.group(1)))


def parse_output_type(value: str | None) -> OutputType:
    """Parse ``video``, ``audio`` or ``merged`` (default ``merged``)."""
    normalized = (value or OutputType.MERGED.value).strip().lower()
    try:
        return OutputType(normalized)
    except ValueError:
        raise InvalidInputError(
            f"Invalid type: {value}",
            hint="Use 'video', 'audio' or 'merged'.",
        ) from None


def pick_by_quality(
    bucket: Sequence[ClassifiedFormat],
    hint: QualityHint,
) -> ClassifiedFormat | None:
    """Apply the best / worst / at-most-N-pixels rule to a sorted bucket.

    A height hint picks the first entry no taller than the target and
    falls back to the first entry when none qualifies.
    """
    if not bucket:
        return None
    if hint.mode == "worst":
        return bucket[-1]
    if hint.mode == "max_height" and hint.max_height is not None:
        for fmt in bucket:
            if (fmt.height or 0) <= hint.max_height:
                return fmt
    return bucket[0]


def select_format(
    catalog: FormatCatalog,
    live: LiveStreamDescriptor | None,
    criteria: SelectionCriteria,
) -> ClassifiedFormat | LiveStreamDescriptor:
    """Pick one format from *catalog* according to *criteria*.

    Raises
    ------
    LiveStreamUnavailableError
        Live content without a manifest URL.
    FormatNotFoundError
        The explicit identifier is not in the catalog.
    InvalidQualityError
        The quality hint cannot be parsed.
    FormatSelectionError
        The bucket(s) for the requested type are empty.
    """
    if live is not None and live.is_live:
        if not live.manifest_url:
            raise LiveStreamUnavailableError(
                "live stream has no playable manifest",
                hint="The broadcast may have ended or not started yet.",
            )
        return live

    if criteria.explicit_itag:
        found = catalog.find(criteria.explicit_itag)
        if found is None:
            raise FormatNotFoundError(
                criteria.explicit_itag,
                catalog.available_itags(),
            )
        return found

    hint = parse_quality_hint(criteria.quality)

    if criteria.output_type is OutputType.AUDIO:
        if not catalog.audio_only:
            raise FormatSelectionError(
                "No audio-only formats available.",
                hint="Try type=merged instead.",
            )
        return catalog.audio_only[0]

    if criteria.output_type is OutputType.VIDEO:
        chosen = pick_by_quality(catalog.video_only, hint)
        if chosen is None:
            raise FormatSelectionError(
                "No video-only formats available.",
                hint="Try type=merged instead.",
            )
        return chosen

    # Merged: degrade to a video-only format when nothing muxed exists.
    chosen = pick_by_quality(catalog.merged, hint) or pick_by_quality(
        catalog.video_only, hint
    )
    if chosen is None:
        raise FormatSelectionError(
            "No suitable format found for streaming.",
            hint="Try type=audio, or list formats via /download.",
        )
    return chosen


def audio_missing(criteria: SelectionCriteria, fmt: ClassifiedFormat) -> bool:
    """Return ``True`` when a merged request was answered without audio."""
    return (
        criteria.explicit_itag is None
        and criteria.output_type is OutputType.MERGED
        and fmt.category is FormatCategory.VIDEO_ONLY
    )
