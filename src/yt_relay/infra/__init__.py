"""Infrastructure layer — external system integration.

This layer wraps all interaction with yt-dlp and the upstream media
CDN.  Every raw third-party exception must be caught here and re-raised
as a :class:`~yt_relay.exceptions.YtRelayError` subclass.

Rules
-----
* No imports from ``cli`` or ``api``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from yt_relay.infra.http_source import HttpxByteSource
from yt_relay.infra.session import YtDlpSessionManager, build_ytdlp_options, ytdlp_session_factory
from yt_relay.infra.ytdlp_provider import YtDlpInfoProvider

__all__: list[str] = [
    "HttpxByteSource",
    "YtDlpInfoProvider",
    "YtDlpSessionManager",
    "build_ytdlp_options",
    "ytdlp_session_factory",
]
