"""Infrastructure: the process-wide yt-dlp session handle.

Creating a ``yt_dlp.YoutubeDL`` loads every extractor and is worth
doing once per process.  :class:`YtDlpSessionManager` owns the single
cached instance:

* :meth:`~YtDlpSessionManager.get_or_init` creates it lazily.  An
  ``asyncio.Lock`` guarantees at most one initialization in flight;
  concurrent callers wait for and reuse its result.
* :meth:`~YtDlpSessionManager.invalidate` drops it so that the next
  caller builds a fresh one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from yt_relay.exceptions import EnvironmentError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Any]


def build_ytdlp_options(
    *,
    cookie_file: str | None = None,
    user_agent: str | None = None,
) -> dict[str, Any]:
    """Return yt-dlp options suitable for metadata-only extraction."""
    opts: dict[str, Any] = {
        "quiet": True,
        "no_warnings": True,
        "no_color": True,
        # Do not write any files to disk.
        "skip_download": True,
        "noplaylist": True,
        # Search results only need flat entries.
        "extract_flat": "in_playlist",
    }
    if cookie_file:
        opts["cookiefile"] = cookie_file
    if user_agent:
        opts["http_headers"] = {"User-Agent": user_agent}
    return opts


def ytdlp_session_factory(options: dict[str, Any]) -> SessionFactory:
    """Return a factory building ``yt_dlp.YoutubeDL(options)``."""

    def _create() -> Any:
        try:
            import yt_dlp
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "yt-dlp is not installed. Install with: pip install yt-dlp",
            ) from exc
        return yt_dlp.YoutubeDL(dict(options))

    return _create


class YtDlpSessionManager:
    """Lazily-initialized, lock-guarded cached session.

    Parameters
    ----------
    factory:
        Zero-argument callable returning a new session.  It runs in a
        worker thread because building a ``YoutubeDL`` blocks.
    """

    def __init__(self, factory: SessionFactory) -> None:
        self._factory = factory
        self._session: Any | None = None
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of sessions created so far."""
        return self._generation

    async def get_or_init(self) -> Any:
        """Return the cached session, creating it on first use."""
        session = self._session
        if session is not None:
            return session
        async with self._lock:
            if self._session is None:
                self._session = await asyncio.to_thread(self._factory)
                self._generation += 1
                logger.info("yt-dlp session #%d created", self._generation)
            return self._session

    async def invalidate(self) -> None:
        """Drop the cached session; the next caller rebuilds it."""
        async with self._lock:
            session, self._session = self._session, None
        # Not closed here: in-flight requests may still be using it.
        if session is not None:
            logger.warning("yt-dlp session #%d invalidated", self._generation)
