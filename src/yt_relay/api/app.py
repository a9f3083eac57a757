"""FastAPI application factory.

:func:`create_app` wires the infrastructure adapters into the core
services and registers the single error boundary of the HTTP surface:
every :class:`~yt_relay.exceptions.YtRelayError` becomes a JSON body
``{"error": ..., "hint": ...}`` with the error's ``http_status``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from yt_relay.api.dependencies import AppServices
from yt_relay.api.routes import router
from yt_relay.config import Settings, get_settings
from yt_relay.core.metadata_service import MetadataService
from yt_relay.core.stream_proxy import DirectUrlResolver, StreamingProxy
from yt_relay.exceptions import YtRelayError
from yt_relay.infra.http_source import HttpxByteSource
from yt_relay.infra.session import (
    YtDlpSessionManager,
    build_ytdlp_options,
    ytdlp_session_factory,
)
from yt_relay.infra.ytdlp_provider import YtDlpInfoProvider
from yt_relay.version import __version__

logger = logging.getLogger(__name__)


def build_services(settings: Settings) -> AppServices:
    """Build the default yt-dlp + httpx service graph."""
    options = build_ytdlp_options(
        cookie_file=settings.cookie_file,
        user_agent=settings.user_agent,
    )
    session = YtDlpSessionManager(ytdlp_session_factory(options))
    provider = YtDlpInfoProvider(
        session,
        failure_threshold=settings.session_failure_threshold,
    )

    def source_factory(
        url: str,
        headers: Iterable[tuple[str, str]],
        range_header: str | None,
    ) -> HttpxByteSource:
        return HttpxByteSource(
            url,
            headers=headers,
            range_header=range_header,
            chunk_size=settings.stream_chunk_size,
            timeout=settings.upstream_timeout,
            user_agent=settings.user_agent,
        )

    return AppServices(
        settings=settings,
        metadata=MetadataService(provider, search_limit_max=settings.search_limit_max),
        proxy=StreamingProxy(),
        resolver=DirectUrlResolver(),
        source_factory=source_factory,
        session=session,
    )


def create_app(
    settings: Settings | None = None,
    *,
    services: AppServices | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Parameters
    ----------
    settings:
        Configuration; defaults to :func:`~yt_relay.config.get_settings`.
    services:
        Pre-built services, e.g. fakes in tests.  Built from *settings*
        when omitted.
    """
    if services is None:
        services = build_services(settings or get_settings())
    settings = services.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("yt-relay %s serving under %s", __version__, settings.api_prefix)
        yield
        if services.session is not None:
            await services.session.invalidate()
        logger.info("yt-relay shut down")

    app = FastAPI(
        title="yt-relay",
        description="YouTube metadata, format selection and stream relay API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    @app.exception_handler(YtRelayError)
    async def handle_relay_error(request: Request, exc: YtRelayError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(exc.to_payload(), status_code=exc.http_status)

    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return f"yt-relay {__version__} is running. API under {settings.api_prefix}"

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app
