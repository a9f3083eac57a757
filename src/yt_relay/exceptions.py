"""Custom exception hierarchy for yt-relay.

All exceptions that cross layer boundaries must inherit from
:class:`YtRelayError`.  Raw third-party exceptions (e.g. from yt-dlp or
httpx) must NEVER propagate beyond the infrastructure layer — they must
be caught and re-raised as a typed subclass defined here.

Each class carries the HTTP status the API error boundary renders it
with.  Client mistakes map to ``400``; everything else is a ``500``
with an actionable ``hint``.

Hierarchy
---------
YtRelayError
├── InvalidInputError
│   ├── InvalidURLError
│   └── InvalidQualityError
├── NotFoundError
│   ├── FormatNotFoundError
│   └── VideoUnavailableError
├── FormatSelectionError
│   ├── NoUsableFormatsError
│   └── LiveStreamUnavailableError
├── UpstreamUnavailableError
│   └── MetadataExtractionError
├── DecipherUnavailableError
├── StreamTransportError
├── ClientDisconnectedError
└── EnvironmentError
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class YtRelayError(Exception):
    """Base exception for all yt-relay errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the API and CLI error boundaries can render a
    clean message without leaking internal stack traces.
    """

    http_status: int = 500
    """Status code used when the error is rendered as an HTTP response."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""

    def to_payload(self) -> dict[str, Any]:
        """Return the structured ``{"error", "hint"}`` response body."""
        payload: dict[str, Any] = {"error": str(self)}
        if self.hint:
            payload["hint"] = self.hint
        return payload


# --- Client input ----------------------------------------------------------

class InvalidInputError(YtRelayError):
    """Raised when a URL, ID, or query parameter is missing or malformed."""

    http_status = 400


class InvalidURLError(InvalidInputError):
    """Raised when the provided URL or video ID fails validation."""


class InvalidQualityError(InvalidInputError):
    """Raised when a quality hint is not ``best``, ``worst`` or ``<N>p``."""


# --- Lookups ---------------------------------------------------------------

class NotFoundError(YtRelayError):
    """Raised when an identifier resolves to nothing."""


class FormatNotFoundError(NotFoundError):
    """Raised when an explicitly requested format identifier is absent.

    The requested identifier and the identifiers that *are* available
    are kept on the exception for diagnostics.
    """

    def __init__(self, requested: str, available: Iterable[str]) -> None:
        self.requested: str = requested
        self.available: tuple[str, ...] = tuple(available)
        listing = ", ".join(self.available) if self.available else "none"
        super().__init__(
            f"Format {requested!r} not found.",
            hint=f"Available formats: {listing}",
        )

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["requested"] = self.requested
        payload["available"] = list(self.available)
        return payload


class VideoUnavailableError(NotFoundError):
    """Raised when the target video is unavailable (private, removed, etc.)."""


# --- Format handling -------------------------------------------------------

class FormatSelectionError(YtRelayError):
    """Raised when no suitable format can be determined."""


class NoUsableFormatsError(FormatSelectionError):
    """Raised when a non-live video exposes no classifiable formats."""


class LiveStreamUnavailableError(FormatSelectionError):
    """Raised when a live video has no playable manifest."""


# --- Upstream --------------------------------------------------------------

class UpstreamUnavailableError(YtRelayError):
    """Raised when the external info source fails, possibly transiently."""


class MetadataExtractionError(UpstreamUnavailableError):
    """Raised when yt-dlp fails to extract video metadata."""


class DecipherUnavailableError(YtRelayError):
    """Raised when a format carries no playable (deciphered) URL."""


# --- Streaming -------------------------------------------------------------

class StreamTransportError(YtRelayError):
    """Raised when relaying bytes from the upstream source fails."""


class ClientDisconnectedError(YtRelayError):
    """Raised by a sink when the receiving client has gone away."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(YtRelayError):
    """Raised when a required runtime dependency is not available."""


def append_ytdlp_upgrade_suggestion(hint: str) -> str:
    """Append yt-dlp upgrade guidance to an existing hint text.

    The suggestion is appended only once and preserves the original
    hint content verbatim.
    """
    marker = "Also try updating yt-dlp:"
    if marker in hint:
        return hint
    return "\n".join(
        (
            hint,
            marker,
            "    pip install --upgrade yt-dlp",
        )
    )
