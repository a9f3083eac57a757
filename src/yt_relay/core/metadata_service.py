"""Core metadata service — orchestrates extraction and format selection.

This is the central service class consumed by the API layer.  It
depends on an :class:`~yt_relay.core.protocols.InfoProvider` injected
at construction time (dependency inversion), keeping the core free of
any external-system imports.

Guarantees
----------
* Pure orchestration — no network I/O of its own, no ``print()``.
* Only :class:`~yt_relay.exceptions.YtRelayError` subclasses escape.
"""

from __future__ import annotations

import logging
from typing import Any

from yt_relay.core.format_catalog import build_catalog
from yt_relay.core.format_selector import select_format
from yt_relay.core.models import (
    ClassifiedFormat,
    FormatCatalog,
    LiveStreamDescriptor,
    SearchResult,
    SelectionCriteria,
    VideoInfo,
)
from yt_relay.core.normalize import normalize_search_entries, normalize_video_info
from yt_relay.core.protocols import InfoProvider
from yt_relay.core.video_id import require_video_id
from yt_relay.exceptions import (
    InvalidInputError,
    UpstreamUnavailableError,
    YtRelayError,
    append_ytdlp_upgrade_suggestion,
)

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10


class MetadataService:
    """Stateless service that extracts metadata and selects formats.

    Parameters
    ----------
    provider:
        Any object satisfying the :class:`InfoProvider` protocol.
    search_limit_max:
        Upper bound applied to search ``limit`` values.
    """

    def __init__(self, provider: InfoProvider, *, search_limit_max: int = 50) -> None:
        self._provider: InfoProvider = provider
        self._search_limit_max = search_limit_max

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_video_info(self, url_or_id: str | None) -> VideoInfo:
        """Resolve *url_or_id* and return normalized metadata.

        Raises
        ------
        InvalidURLError
            If *url_or_id* is empty or not a recognised YouTube shape.
        UpstreamUnavailableError
            If the backend fails to return metadata.
        VideoUnavailableError
            If the video is confirmed unavailable.
        """
        video_id = require_video_id(url_or_id)
        raw = await self._fetch(video_id)
        info = normalize_video_info(video_id, raw)
        logger.debug(
            "Resolved %s: %d formats, live=%s",
            video_id,
            len(info.formats),
            info.is_live,
        )
        return info

    @staticmethod
    def get_catalog(info: VideoInfo) -> FormatCatalog:
        """Build the sorted format catalog for *info*.

        Raises
        ------
        NoUsableFormatsError
            If an on-demand video has no classifiable formats.
        """
        return build_catalog(info.formats, is_live=info.is_live)

    async def select(
        self,
        url_or_id: str | None,
        criteria: SelectionCriteria,
    ) -> tuple[VideoInfo, ClassifiedFormat | LiveStreamDescriptor]:
        """Fetch metadata and pick one format (or the live manifest)."""
        info = await self.get_video_info(url_or_id)
        catalog = self.get_catalog(info)
        return info, select_format(catalog, info.live_descriptor(), criteria)

    async def search(self, query: str | None, limit: int = DEFAULT_SEARCH_LIMIT) -> list[SearchResult]:
        """Search for videos matching *query*.

        *limit* is clamped to ``1..search_limit_max``.
        """
        if query is None or not query.strip():
            raise InvalidInputError("q is required")
        bounded = max(1, min(limit, self._search_limit_max))
        try:
            entries = await self._provider.search(query.strip(), bounded)
        except YtRelayError:
            raise
        except Exception as exc:
            raise UpstreamUnavailableError(
                f"Unexpected search error: {exc}",
            ) from exc
        return normalize_search_entries(entries, bounded)

    # ------------------------------------------------------------------
    # Provider delegation (safe boundary)
    # ------------------------------------------------------------------

    async def _fetch(self, video_id: str) -> dict[str, Any]:
        """Call the provider and ensure only our exceptions escape."""
        try:
            return await self._provider.fetch_info(video_id)
        except YtRelayError:
            # Already one of ours; propagate unchanged.
            raise
        except Exception as exc:
            raise UpstreamUnavailableError(
                f"Unexpected provider error: {exc}",
                hint=append_ytdlp_upgrade_suggestion(
                    "The video may be restricted or unavailable.",
                ),
            ) from exc
