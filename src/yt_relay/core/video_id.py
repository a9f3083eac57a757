"""Video-identifier resolution.

Normalizes the URL shapes people paste (``watch?v=``, ``youtu.be``,
``/embed/``, ``/shorts/``, ``/live/``, ``/v/``) and bare IDs into a
canonical :data:`~yt_relay.core.models.VideoId`.

Pure functions only; no network access.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qs, unquote, urlsplit

from yt_relay.core.models import VideoId
from yt_relay.exceptions import InvalidURLError

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
_PATH_ID_RE = re.compile(r"^/(?:embed|shorts|live|v)/([^/?#]+)")

_SHORT_HOSTS: frozenset[str] = frozenset({"youtu.be", "www.youtu.be"})
_LONG_HOST = "youtube.com"

_MAX_DECODE_ROUNDS = 10

SUPPORTED_SHAPES_HINT = (
    "Use a youtube.com/watch?v=, youtu.be/, /embed/, /shorts/, /live/ or "
    "/v/ URL, or a bare 11-character video ID."
)


def fully_decode(value: str) -> str:
    """Percent-decode *value* until it stops changing.

    Decoding stops early (keeping the last good value) when an escape
    sequence does not decode to valid UTF-8.
    """
    decoded = value
    for _ in range(_MAX_DECODE_ROUNDS):
        try:
            candidate = unquote(decoded, errors="strict")
        except UnicodeDecodeError:
            break
        if candidate == decoded:
            break
        decoded = candidate
    return decoded


def is_valid_video_id(value: str) -> bool:
    """Return ``True`` if *value* is exactly an 11-character video ID."""
    return bool(_VIDEO_ID_RE.match(value))


def resolve_video_id(value: str) -> VideoId | None:
    """Extract the canonical video ID from *value*, or ``None``.

    Resolution order matters: the bare-ID fast path runs before any URL
    parsing because callers may pass raw IDs with no URL structure.
    """
    if not value:
        return None

    decoded = fully_decode(value).strip()
    if is_valid_video_id(decoded):
        return VideoId(decoded)

    candidate = _candidate_from_url(decoded)
    if candidate is not None and is_valid_video_id(candidate):
        return VideoId(candidate)
    return None


def require_video_id(value: str | None) -> VideoId:
    """Like :func:`resolve_video_id` but raise :class:`InvalidURLError`."""
    if value is None or not value.strip():
        raise InvalidURLError("url is required", hint=SUPPORTED_SHAPES_HINT)
    video_id = resolve_video_id(value)
    if video_id is None:
        raise InvalidURLError("Invalid YouTube URL", hint=SUPPORTED_SHAPES_HINT)
    return video_id


def _candidate_from_url(value: str) -> str | None:
    if "://" not in value:
        value = f"https://{value}"
    try:
        parts = urlsplit(value)
        host = (parts.hostname or "").lower()
    except ValueError:
        return None

    if host in _SHORT_HOSTS:
        segment = parts.path.lstrip("/").split("/", 1)[0]
        return segment or None

    if host == _LONG_HOST or host.endswith("." + _LONG_HOST):
        v_values = parse_qs(parts.query).get("v")
        if v_values and v_values[0]:
            return v_values[0]
        match = _PATH_ID_RE.match(parts.path)
        if match:
            return match.group(1)

    return None
