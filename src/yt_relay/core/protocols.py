"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters and the HTTP
layer must satisfy.  Core code depends ONLY on these protocols — never
on concrete implementations — preserving the dependency inversion
principle.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

from yt_relay.core.models import RawFormatDescriptor


class InfoProvider(Protocol):
    """Contract for video metadata backends.

    Any object that implements these coroutines with the correct
    signature satisfies this protocol structurally (no explicit
    inheritance required).
    """

    async def fetch_info(self, video_id: str) -> dict[str, Any]:
        """Fetch the raw info dict for *video_id*.

        The returned dict must contain at least ``"title"`` and either a
        ``"formats"`` list or a ``"streamingData"`` mapping.

        Implementations must map all backend-specific exceptions to
        :class:`~yt_relay.exceptions.YtRelayError` subclasses.

        Raises
        ------
        UpstreamUnavailableError
            When the backend fails to return metadata.
        VideoUnavailableError
            When the target video is confirmed unavailable.
        """
        ...  # pragma: no cover

    async def search(self, query: str, limit: int) -> list[dict[str, Any]]:
        """Return up to *limit* flat video entries matching *query*."""
        ...  # pragma: no cover


class PlayableUrlResolver(Protocol):
    """Turns a format descriptor into a URL that can be fetched directly."""

    def resolve_playable_url(self, raw: RawFormatDescriptor) -> str:
        """Return the fetchable URL for *raw*.

        Raises
        ------
        DecipherUnavailableError
            When no deciphered URL can be produced.
        """
        ...  # pragma: no cover


class ByteSource(Protocol):
    """An upstream media byte stream.

    Usage order is ``open()`` → ``iter_bytes()`` → ``aclose()``.
    ``aclose()`` must be idempotent and safe to call without ``open()``.
    """

    status_code: int
    """Upstream status after :meth:`open` (``200`` or ``206``)."""

    headers: Mapping[str, str]
    """Upstream response headers after :meth:`open`."""

    async def open(self) -> None:
        """Start the upstream request.

        Raises
        ------
        StreamTransportError
            When the upstream cannot be reached or answers with an error.
        """
        ...  # pragma: no cover

    def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield body chunks; raise :class:`StreamTransportError` on failure."""
        ...  # pragma: no cover

    async def aclose(self) -> None:
        ...  # pragma: no cover


class ByteSink(Protocol):
    """The client-facing end of a relay.

    Write failures caused by the client going away must surface as
    :class:`~yt_relay.exceptions.ClientDisconnectedError`.
    """

    @property
    def headers_sent(self) -> bool:
        ...  # pragma: no cover

    async def send_headers(self, status: int, headers: Mapping[str, str]) -> None:
        ...  # pragma: no cover

    async def write(self, chunk: bytes) -> None:
        ...  # pragma: no cover

    async def close(self) -> None:
        """Finish the response after the last chunk."""
        ...  # pragma: no cover

    async def terminate(self) -> None:
        """End a response that was cut short, without touching headers."""
        ...  # pragma: no cover

    async def send_error(self, status: int, payload: Mapping[str, Any]) -> None:
        """Send a complete structured error response (headers not yet sent)."""
        ...  # pragma: no cover

    async def wait_disconnected(self) -> None:
        """Return once the client has disconnected."""
        ...  # pragma: no cover
