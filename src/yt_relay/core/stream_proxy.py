"""Streaming proxy: relays upstream media bytes to a client sink.

A relay session has exactly one of three outcomes, reported through
:class:`StreamResult`:

* ``COMPLETED``: the upstream ended and the sink was closed.
* ``UPSTREAM_FAILED``: the upstream errored.  Before any header went
  out the client receives a structured JSON error; afterwards the
  response is terminated without touching headers.
* ``CLIENT_DISCONNECTED``: the client went away; the copy is cancelled
  and the upstream released immediately.

The proxy holds no I/O of its own: bytes come from a
:class:`~yt_relay.core.protocols.ByteSource` and go to a
:class:`~yt_relay.core.protocols.ByteSink`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from yt_relay.core.models import ClassifiedFormat, RawFormatDescriptor
from yt_relay.core.protocols import ByteSink, ByteSource
from yt_relay.exceptions import (
    ClientDisconnectedError,
    DecipherUnavailableError,
    StreamTransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "video/mp4"
DEFAULT_FILENAME = "video"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_\s-]", re.ASCII)


class StreamOutcome(str, Enum):
    COMPLETED = "completed"
    UPSTREAM_FAILED = "upstream_failed"
    CLIENT_DISCONNECTED = "client_disconnected"


@dataclass(frozen=True, slots=True)
class StreamResult:
    """How a relay session ended."""

    outcome: StreamOutcome
    bytes_sent: int
    headers_sent: bool
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class ResponseFraming:
    """Response metadata declared before any media byte flows."""

    content_type: str
    content_length: int | None
    content_disposition: str
    extra: tuple[tuple[str, str], ...] = ()

    def to_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": self.content_type,
            "Content-Disposition": self.content_disposition,
            "Accept-Ranges": "bytes",
        }
        if self.content_length is not None:
            headers["Content-Length"] = str(self.content_length)
        headers.update(self.extra)
        return headers


# ---------------------------------------------------------------------------
# Framing helpers (pure)
# ---------------------------------------------------------------------------

def sanitize_filename(title: str | None) -> str:
    """Keep only ``[A-Za-z0-9_\\s-]``, trim, and default to ``"video"``."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", title or "").strip()
    return cleaned or DEFAULT_FILENAME


def build_framing(
    fmt: ClassifiedFormat,
    *,
    title: str | None,
    as_attachment: bool,
    extra: Mapping[str, str] | None = None,
) -> ResponseFraming:
    """Derive content type, length and disposition for *fmt*."""
    content_type = fmt.raw.mime_type or DEFAULT_CONTENT_TYPE
    if as_attachment:
        disposition = f'attachment; filename="{sanitize_filename(title)}.{fmt.ext}"'
    else:
        disposition = "inline"
    return ResponseFraming(
        content_type=content_type,
        content_length=fmt.raw.content_length,
        content_disposition=disposition,
        extra=tuple((extra or {}).items()),
    )


class DirectUrlResolver:
    """:class:`PlayableUrlResolver` for backends that decipher up front.

    yt-dlp returns formats whose ``url`` is already deciphered; a format
    carrying only a signature cipher cannot be played.
    """

    def resolve_playable_url(self, raw: RawFormatDescriptor) -> str:
        if raw.url:
            return raw.url
        if raw.signature_cipher:
            raise DecipherUnavailableError(
                f"Format {raw.itag} requires signature deciphering.",
                hint="Try another itag, or update yt-dlp.",
            )
        raise DecipherUnavailableError(
            f"Format {raw.itag} has no playable URL.",
            hint="Try another itag.",
        )


# ---------------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------------

@dataclass
class _Progress:
    bytes_sent: int = 0
    errors: list[Exception] = field(default_factory=list)


class StreamingProxy:
    """Relays a :class:`ByteSource` into a :class:`ByteSink`.

    Parameters
    ----------
    error_status:
        Status used for the structured error sent when the upstream
        fails before any header went out.
    """

    def __init__(self, *, error_status: int = 500) -> None:
        self._error_status = error_status

    async def open_stream(
        self,
        fmt: ClassifiedFormat,
        sink: ByteSink,
        *,
        source: ByteSource,
        title: str | None = None,
        as_attachment: bool = False,
        extra_headers: Mapping[str, str] | None = None,
    ) -> StreamResult:
        """Relay *source* to *sink* with framing derived from *fmt*."""
        framing = build_framing(
            fmt,
            title=title,
            as_attachment=as_attachment,
            extra=extra_headers,
        )
        result = await self.relay(source, sink, framing)
        logger.info(
            "Relay of itag %s ended: %s (%d bytes)",
            fmt.itag,
            result.outcome.value,
            result.bytes_sent,
        )
        return result

    async def relay(
        self,
        source: ByteSource,
        sink: ByteSink,
        framing: ResponseFraming,
    ) -> StreamResult:
        """Copy *source* into *sink* until one of the three outcomes.

        The copy and the disconnect watcher race; whichever finishes
        first decides the outcome, and the upstream is always closed.
        """
        progress = _Progress()
        copy_task = asyncio.ensure_future(self._copy(source, sink, framing, progress))
        watch_task = asyncio.ensure_future(sink.wait_disconnected())
        try:
            done, _ = await asyncio.wait(
                {copy_task, watch_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if copy_task in done:
                outcome = copy_task.result()
            else:
                copy_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await copy_task
                outcome = StreamOutcome.CLIENT_DISCONNECTED
                logger.info("Client disconnected after %d bytes", progress.bytes_sent)
        finally:
            for task in (copy_task, watch_task):
                if not task.done():
                    task.cancel()
            # Outcomes were already read above; this only reaps the tasks.
            await asyncio.gather(copy_task, watch_task, return_exceptions=True)
            await source.aclose()

        return StreamResult(
            outcome=outcome,
            bytes_sent=progress.bytes_sent,
            headers_sent=sink.headers_sent,
            error=progress.errors[0] if progress.errors else None,
        )

    async def _copy(
        self,
        source: ByteSource,
        sink: ByteSink,
        framing: ResponseFraming,
        progress: _Progress,
    ) -> StreamOutcome:
        try:
            await source.open()
            async for chunk in source.iter_bytes():
                if not chunk:
                    continue
                if not sink.headers_sent:
                    await self._send_headers(source, sink, framing)
                await sink.write(chunk)
                progress.bytes_sent += len(chunk)
            if not sink.headers_sent:
                await self._send_headers(source, sink, framing)
        except ClientDisconnectedError as exc:
            progress.errors.append(exc)
            return StreamOutcome.CLIENT_DISCONNECTED
        except StreamTransportError as exc:
            progress.errors.append(exc)
            logger.warning("Upstream failed after %d bytes: %s", progress.bytes_sent, exc)
            await self._fail(sink, exc)
            return StreamOutcome.UPSTREAM_FAILED
        except Exception as exc:
            logger.exception("Unexpected upstream error after %d bytes", progress.bytes_sent)
            error = StreamTransportError(f"Upstream relay failed: {exc}")
            error.__cause__ = exc
            progress.errors.append(error)
            await self._fail(sink, error)
            return StreamOutcome.UPSTREAM_FAILED

        try:
            await sink.close()
        except ClientDisconnectedError as exc:
            progress.errors.append(exc)
            return StreamOutcome.CLIENT_DISCONNECTED
        return StreamOutcome.COMPLETED

    @staticmethod
    async def _send_headers(
        source: ByteSource,
        sink: ByteSink,
        framing: ResponseFraming,
    ) -> None:
        headers = framing.to_headers()
        status = 200
        if source.status_code == 206:
            # Partial content: the upstream's range framing wins.
            status = 206
            headers.pop("Content-Length", None)
            content_range = _header(source.headers, "Content-Range")
            if content_range is not None:
                headers["Content-Range"] = content_range
        # The upstream's own length beats the catalog's.  A content-encoded
        # body is decoded on the way through, so its length does not apply.
        length = _header(source.headers, "Content-Length")
        if length is not None and _header(source.headers, "Content-Encoding") is None:
            headers["Content-Length"] = length
        await sink.send_headers(status, headers)

    async def _fail(self, sink: ByteSink, exc: StreamTransportError) -> None:
        try:
            if sink.headers_sent:
                await sink.terminate()
            else:
                payload = exc.to_payload()
                payload.setdefault(
                    "hint",
                    "Retry the request, or try a different itag.",
                )
                await sink.send_error(self._error_status, payload)
        except ClientDisconnectedError:
            logger.debug("Client already gone while reporting upstream failure")


def _header(headers: Mapping[str, str], name: str) -> str | None:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None
