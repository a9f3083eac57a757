"""Service container shared by the HTTP routes."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from fastapi import Request

from yt_relay.config import Settings
from yt_relay.core.metadata_service import MetadataService
from yt_relay.core.protocols import ByteSource, PlayableUrlResolver
from yt_relay.core.stream_proxy import StreamingProxy
from yt_relay.infra.session import YtDlpSessionManager

SourceFactory = Callable[[str, Iterable[tuple[str, str]], str | None], ByteSource]
"""``(url, http_headers, range_header) -> ByteSource``."""


@dataclass(slots=True)
class AppServices:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    metadata: MetadataService
    proxy: StreamingProxy
    resolver: PlayableUrlResolver
    source_factory: SourceFactory
    session: YtDlpSessionManager | None = None
    """The yt-dlp session, when the default backend is in use."""


def get_services(request: Request) -> AppServices:
    return request.app.state.services
