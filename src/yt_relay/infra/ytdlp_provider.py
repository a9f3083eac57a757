"""yt-dlp backed implementation of :class:`~yt_relay.core.protocols.InfoProvider`.

This module is the **only** place in the codebase that calls into the
yt-dlp extraction API.  All yt-dlp exceptions are caught here and
re-raised as typed :class:`~yt_relay.exceptions.YtRelayError`
subclasses — nothing raw escapes the infrastructure boundary.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from yt_relay.exceptions import (
    EnvironmentError,
    MetadataExtractionError,
    UpstreamUnavailableError,
    VideoUnavailableError,
    YtRelayError,
    append_ytdlp_upgrade_suggestion,
)
from yt_relay.infra.session import YtDlpSessionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


class YtDlpInfoProvider:
    """Concrete :class:`InfoProvider` backed by the yt-dlp Python API.

    Usage::

        provider = YtDlpInfoProvider(YtDlpSessionManager(factory))
        info = await provider.fetch_info("dQw4w9WgXcQ")

    Retry policy
    ------------
    Consecutive upstream failures are counted.  Below
    *failure_threshold* a failure propagates immediately.  Once the
    threshold is reached the session is assumed stale: it is
    invalidated and the call retried exactly once.  Any success resets
    the count.
    """

    # Substrings in yt-dlp error messages that indicate the video itself
    # is unavailable (as opposed to a transient or extraction error).
    _UNAVAILABLE_SIGNALS: tuple[str, ...] = (
        "unavailable",
        "private video",
        "removed",
        "not available",
        "account terminated",
        "video has been removed",
        "this video is no longer available",
        "sign in to confirm your age",
    )

    def __init__(
        self,
        session: YtDlpSessionManager,
        *,
        failure_threshold: int = 3,
    ) -> None:
        self._session = session
        self._failure_threshold = max(1, failure_threshold)
        self._failures = 0

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    async def fetch_info(self, video_id: str) -> dict[str, Any]:
        """Extract metadata for *video_id* without downloading.

        Raises
        ------
        VideoUnavailableError
            When yt-dlp reports the video as unavailable / private / removed.
        MetadataExtractionError
            For all other extraction failures.
        """
        url = WATCH_URL.format(video_id=video_id)
        info = await self._call(lambda ydl: ydl.extract_info(url, download=False))

        if info is None:
            raise MetadataExtractionError(
                "yt-dlp returned no metadata for the given URL.",
                hint="The URL may not point to a valid video.",
            )
        if not isinstance(info, dict):
            raise MetadataExtractionError(
                "yt-dlp returned an unexpected data structure.",
            )
        return dict(info)  # shallow copy, isolated from yt-dlp internals

    async def search(self, query: str, limit: int) -> list[dict[str, Any]]:
        """Run a ``ytsearchN:`` query and return the flat entries."""
        info = await self._call(
            lambda ydl: ydl.extract_info(f"ytsearch{limit}:{query}", download=False)
        )
        if not isinstance(info, dict):
            return []
        entries = info.get("entries") or []
        return [dict(entry) for entry in entries if isinstance(entry, dict)]

    # ------------------------------------------------------------------
    # Retry policy
    # ------------------------------------------------------------------

    async def _call(self, fn: Callable[[Any], T]) -> T:
        try:
            result = await self._attempt(fn)
        except UpstreamUnavailableError as exc:
            self._failures += 1
            if self._failures < self._failure_threshold:
                raise
            logger.warning(
                "%d consecutive yt-dlp failures (last: %s); rebuilding session",
                self._failures,
                exc,
            )
            self._failures = 0
            await self._session.invalidate()
            try:
                result = await self._attempt(fn)
            except UpstreamUnavailableError:
                self._failures += 1
                raise
        self._failures = 0
        return result

    async def _attempt(self, fn: Callable[[Any], T]) -> T:
        try:
            import yt_dlp.utils
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "yt-dlp is not installed. Install with: pip install yt-dlp",
            ) from exc

        ydl = await self._session.get_or_init()

        try:
            return await asyncio.to_thread(fn, ydl)
        except YtRelayError:
            raise
        except yt_dlp.utils.DownloadError as exc:
            self._raise_mapped(exc)
        except Exception as exc:
            raise MetadataExtractionError(
                f"Unexpected yt-dlp error: {exc}",
            ) from exc

    # ------------------------------------------------------------------
    # Exception mapping
    # ------------------------------------------------------------------

    @classmethod
    def _raise_mapped(cls, exc: Exception) -> None:
        """Translate a yt-dlp ``DownloadError`` into a domain exception.

        Always raises — the ``Never`` return type is implicit via
        ``raise`` at every exit path.
        """
        msg_lower = str(exc).lower()
        if any(signal in msg_lower for signal in cls._UNAVAILABLE_SIGNALS):
            raise VideoUnavailableError(
                str(exc),
                hint="The video may be private, removed, or geo-restricted.",
            ) from exc
        logger.warning("yt-dlp extraction failed: %s", exc)
        raise MetadataExtractionError(
            str(exc),
            hint=append_ytdlp_upgrade_suggestion(
                "YouTube may be throttling this server; retry shortly.",
            ),
        ) from exc
