"""Tests for the cached yt-dlp session handle (infra/session.py)."""

from __future__ import annotations

import asyncio
import threading
import time
from typing import Any

from yt_relay.infra.session import YtDlpSessionManager, build_ytdlp_options


class _CountingFactory:
    """Slow factory that records how often it was called."""

    def __init__(self, delay: float = 0.05) -> None:
        self.calls = 0
        self._delay = delay
        self._lock = threading.Lock()

    def __call__(self) -> Any:
        with self._lock:
            self.calls += 1
            n = self.calls
        time.sleep(self._delay)
        return f"session-{n}"


class TestBuildOptions:
    def test_metadata_only(self) -> None:
        opts = build_ytdlp_options()
        assert opts["skip_download"] is True
        assert opts["quiet"] is True
        assert "cookiefile" not in opts
        assert "http_headers" not in opts

    def test_cookie_file_and_user_agent(self) -> None:
        opts = build_ytdlp_options(cookie_file="/tmp/cookies.txt", user_agent="UA/1.0")
        assert opts["cookiefile"] == "/tmp/cookies.txt"
        assert opts["http_headers"] == {"User-Agent": "UA/1.0"}


class TestSessionManager:
    def test_lazy_initialization(self) -> None:
        factory = _CountingFactory(delay=0)
        manager = YtDlpSessionManager(factory)
        assert factory.calls == 0
        assert manager.generation == 0

        assert asyncio.run(manager.get_or_init()) == "session-1"
        assert factory.calls == 1
        assert manager.generation == 1

    def test_concurrent_callers_share_one_initialization(self) -> None:
        factory = _CountingFactory()
        manager = YtDlpSessionManager(factory)

        async def scenario() -> list[Any]:
            return await asyncio.gather(*(manager.get_or_init() for _ in range(10)))

        results = asyncio.run(scenario())
        assert factory.calls == 1
        assert set(results) == {"session-1"}

    def test_reuses_cached_session(self) -> None:
        factory = _CountingFactory(delay=0)
        manager = YtDlpSessionManager(factory)

        async def scenario() -> tuple[Any, Any]:
            return await manager.get_or_init(), await manager.get_or_init()

        first, second = asyncio.run(scenario())
        assert first is second
        assert factory.calls == 1

    def test_invalidate_forces_rebuild(self) -> None:
        factory = _CountingFactory(delay=0)
        manager = YtDlpSessionManager(factory)

        async def scenario() -> tuple[Any, Any]:
            first = await manager.get_or_init()
            await manager.invalidate()
            return first, await manager.get_or_init()

        first, second = asyncio.run(scenario())
        assert (first, second) == ("session-1", "session-2")
        assert manager.generation == 2

    def test_invalidate_without_session_is_noop(self) -> None:
        factory = _CountingFactory(delay=0)
        manager = YtDlpSessionManager(factory)
        asyncio.run(manager.invalidate())
        assert factory.calls == 0
