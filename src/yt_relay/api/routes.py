"""HTTP routes of the yt-relay service.

No business logic lives here: every route resolves its collaborators
from :class:`~yt_relay.api.dependencies.AppServices`, delegates to the
core layer, and reshapes the result with
:mod:`yt_relay.api.serializers`.  Errors propagate as
:class:`~yt_relay.exceptions.YtRelayError` and are rendered by the
handler registered in :mod:`yt_relay.api.app`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from yt_relay.api import serializers
from yt_relay.api.dependencies import AppServices, get_services
from yt_relay.api.streaming import RelayResponse
from yt_relay.core.format_selector import (
    audio_missing,
    parse_output_type,
    parse_quality_hint,
)
from yt_relay.core.models import FormatCategory, LiveStreamDescriptor, SelectionCriteria
from yt_relay.core.video_id import is_valid_video_id
from yt_relay.exceptions import InvalidInputError, InvalidURLError, YtRelayError

logger = logging.getLogger(__name__)

router = APIRouter()

_TRUTHY: frozenset[str] = frozenset({"1", "true", "yes", "on"})

DOWNLOAD_FALLBACK_HINT = "Try the /download endpoint instead."
STREAM_FALLBACK_HINT = "Try a different itag or use /download to list available formats."
V2_FALLBACK_HINT = "Try /download-fast or /download instead."


@asynccontextmanager
async def fallback_hint(hint: str) -> AsyncIterator[None]:
    """Attach *hint* to any :class:`YtRelayError` raised without one."""
    try:
        yield
    except YtRelayError as exc:
        if exc.hint is None:
            exc.hint = hint
        raise


def _base_url(request: Request, services: AppServices) -> str:
    """Public base URL of the API, including the router prefix."""
    root = services.settings.public_base_url or str(request.base_url)
    return root.rstrip("/") + services.settings.api_prefix


def _parse_limit(value: str | None, default: int = 10) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidInputError(f"Invalid limit: {value}", hint="limit must be an integer.") from None


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

@router.get("/info")
async def get_info(
    url: str | None = None,
    services: AppServices = Depends(get_services),
) -> dict[str, Any]:
    """Title, thumbnails and the raw upstream format list."""
    info = await services.metadata.get_video_info(url)
    return serializers.legacy_info_to_dict(info)


@router.get("/download")
async def get_download_info(
    url: str | None = None,
    services: AppServices = Depends(get_services),
) -> dict[str, Any]:
    """Metadata with formats split into merged / video-only / audio-only."""
    info = await services.metadata.get_video_info(url)
    catalog = services.metadata.get_catalog(info)
    return {**serializers.video_summary(info), **serializers.catalog_to_dict(catalog)}


@router.get("/download-fast")
async def get_download_fast(
    request: Request,
    url: str | None = None,
    services: AppServices = Depends(get_services),
) -> dict[str, Any]:
    """Like ``/download`` with proxy ``streamUrl``/``downloadUrl`` per format."""
    async with fallback_hint(DOWNLOAD_FALLBACK_HINT):
        info = await services.metadata.get_video_info(url)
        catalog = services.metadata.get_catalog(info)
    base = _base_url(request, services)
    return {
        **serializers.video_summary(info),
        **serializers.catalog_to_dict(catalog, base_url=base, video_id=info.id),
    }


@router.get("/search")
async def search(
    q: str | None = None,
    limit: str | None = None,
    services: AppServices = Depends(get_services),
) -> dict[str, Any]:
    results = await services.metadata.search(q, _parse_limit(limit))
    return {"results": [serializers.search_result_to_dict(r) for r in results]}


@router.get("/v2")
async def get_v2(
    request: Request,
    url: str | None = None,
    services: AppServices = Depends(get_services),
) -> Any:
    """Complete metadata plus ready-made ``quickStream`` links."""
    try:
        info = await services.metadata.get_video_info(url)
        catalog = services.metadata.get_catalog(info)
    except YtRelayError as exc:
        logger.warning("v2 lookup failed for %r: %s", url, exc)
        payload = {"success": False, **exc.to_payload()}
        payload.setdefault("hint", V2_FALLBACK_HINT)
        return JSONResponse(payload, status_code=exc.http_status)

    base = _base_url(request, services)
    return {
        "success": True,
        **serializers.video_details(info),
        **serializers.catalog_to_dict(catalog, base_url=base, video_id=info.id),
        "quickStream": serializers.quick_stream_links(base, info),
    }


@router.get("/proxy")
async def get_proxy_links(
    request: Request,
    url: str | None = None,
    services: AppServices = Depends(get_services),
) -> dict[str, Any]:
    """Best-quality proxy links without the full format listing."""
    info = await services.metadata.get_video_info(url)
    base = _base_url(request, services)
    data = serializers.video_summary(info)
    if info.is_live:
        data["streamUrl"] = serializers.stream_url(base, info.id)
        data["downloadUrl"] = None
        return data
    data.update(
        streamUrl=serializers.stream_url(base, info.id, type="merged"),
        downloadUrl=serializers.stream_url(base, info.id, type="merged", download="1"),
        videoStreamUrl=serializers.stream_url(base, info.id, type="video"),
        audioStreamUrl=serializers.stream_url(base, info.id, type="audio"),
        audioDownloadUrl=serializers.stream_url(base, info.id, type="audio", download="1"),
    )
    return data


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------

@router.get("/stream/{video_id}")
async def stream(
    video_id: str,
    request: Request,
    itag: str | None = None,
    download: str | None = None,
    type: str | None = None,
    quality: str | None = None,
    services: AppServices = Depends(get_services),
) -> Response:
    """Relay the selected format, or redirect to the HLS manifest when live."""
    if not is_valid_video_id(video_id):
        raise InvalidURLError(
            "Invalid video ID",
            hint="A video ID is exactly 11 characters of [A-Za-z0-9_-].",
        )
    output_type = parse_output_type(type)
    parse_quality_hint(quality)
    criteria = SelectionCriteria(
        output_type=output_type,
        quality=quality or "best",
        explicit_itag=itag or None,
    )

    async with fallback_hint(STREAM_FALLBACK_HINT):
        info, selected = await services.metadata.select(video_id, criteria)
        if isinstance(selected, LiveStreamDescriptor):
            logger.info("Redirecting live %s to its HLS manifest", video_id)
            return RedirectResponse(str(selected.manifest_url), status_code=302)
        playable_url = services.resolver.resolve_playable_url(selected.raw)

    if audio_missing(criteria, selected):
        logger.info("No merged format for %s; serving video-only itag %s", video_id, selected.itag)

    source = services.source_factory(
        playable_url,
        selected.raw.http_headers,
        request.headers.get("range"),
    )
    return RelayResponse(
        services.proxy,
        selected,
        source,
        title=info.title,
        as_attachment=(download or "").lower() in _TRUTHY,
        extra_headers={
            "X-Format-Itag": selected.itag,
            "X-Audio-Included": "false" if selected.category is FormatCategory.VIDEO_ONLY else "true",
        },
    )
