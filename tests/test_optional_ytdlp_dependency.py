"""Regression tests for the optional yt-dlp dependency boundary.

CLI bootstrap paths must work without yt-dlp, while extraction fails
cleanly with a typed environment error.
"""

from __future__ import annotations

import asyncio
import sys

import pytest

from yt_relay.cli import exit_codes
from yt_relay.cli.app import main
from yt_relay.exceptions import EnvironmentError
from yt_relay.infra.session import YtDlpSessionManager, ytdlp_session_factory
from yt_relay.infra.ytdlp_provider import YtDlpInfoProvider


def _remove_ytdlp(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "yt_dlp", None)
    monkeypatch.setitem(sys.modules, "yt_dlp.utils", None)
    monkeypatch.setitem(sys.modules, "yt_dlp.version", None)


def test_help_works_without_ytdlp(monkeypatch: pytest.MonkeyPatch) -> None:
    _remove_ytdlp(monkeypatch)
    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0


def test_version_works_without_ytdlp(monkeypatch: pytest.MonkeyPatch) -> None:
    _remove_ytdlp(monkeypatch)
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])
    assert exc_info.value.code == 0


def test_doctor_reports_missing_ytdlp(monkeypatch: pytest.MonkeyPatch) -> None:
    _remove_ytdlp(monkeypatch)
    assert main(["doctor"]) == exit_codes.GENERAL_ERROR


def test_session_factory_raises_environment_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _remove_ytdlp(monkeypatch)
    create = ytdlp_session_factory({})
    with pytest.raises(EnvironmentError, match="yt-dlp is not installed"):
        create()


def test_fetch_info_raises_environment_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _remove_ytdlp(monkeypatch)
    provider = YtDlpInfoProvider(YtDlpSessionManager(lambda: None))
    with pytest.raises(EnvironmentError, match="yt-dlp is not installed"):
        asyncio.run(provider.fetch_info("dQw4w9WgXcQ"))
