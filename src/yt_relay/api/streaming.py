"""ASGI side of the streaming proxy.

:class:`ASGIByteSink` adapts the raw ASGI ``send`` / ``receive``
channel to :class:`~yt_relay.core.protocols.ByteSink`, and
:class:`RelayResponse` is the Starlette response the ``/stream`` route
returns.  Starlette's ``StreamingResponse`` commits headers before the
first chunk exists, so the relay drives ``send`` directly instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from starlette.responses import JSONResponse, Response
from starlette.types import Receive, Scope, Send

from yt_relay.core.models import ClassifiedFormat
from yt_relay.core.protocols import ByteSource
from yt_relay.core.stream_proxy import StreamingProxy
from yt_relay.exceptions import ClientDisconnectedError


class ASGIByteSink:
    """:class:`ByteSink` writing to an ASGI HTTP connection."""

    def __init__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self._scope = scope
        self._receive = receive
        self._send = send
        self._headers_sent = False
        self._finished = False
        self._length_declared = False

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    async def send_headers(self, status: int, headers: Mapping[str, str]) -> None:
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in headers.items()
        ]
        self._length_declared = any(name == b"content-length" for name, _ in raw_headers)
        await self._emit({"type": "http.response.start", "status": status, "headers": raw_headers})
        self._headers_sent = True

    async def write(self, chunk: bytes) -> None:
        await self._emit({"type": "http.response.body", "body": chunk, "more_body": True})

    async def close(self) -> None:
        if self._finished:
            return
        self._finished = True
        await self._emit({"type": "http.response.body", "body": b"", "more_body": False})

    async def terminate(self) -> None:
        """End a truncated response.

        With a declared ``Content-Length`` the response is left
        incomplete, so the server drops the connection and the client
        sees a short read.  A chunked response is closed normally.
        """
        if self._length_declared:
            self._finished = True
            return
        await self.close()

    async def send_error(self, status: int, payload: Mapping[str, Any]) -> None:
        response = JSONResponse(dict(payload), status_code=status)
        self._headers_sent = True
        self._finished = True
        try:
            await response(self._scope, self._receive, self._send)
        except OSError as exc:
            raise ClientDisconnectedError("Client disconnected") from exc

    async def wait_disconnected(self) -> None:
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                return

    async def _emit(self, message: dict[str, Any]) -> None:
        try:
            await self._send(message)
        except OSError as exc:
            # uvicorn raises ClientDisconnected (an OSError) once the peer is gone.
            raise ClientDisconnectedError("Client disconnected") from exc


class RelayResponse(Response):
    """Response whose body is relayed from an upstream :class:`ByteSource`."""

    def __init__(
        self,
        proxy: StreamingProxy,
        fmt: ClassifiedFormat,
        source: ByteSource,
        *,
        title: str | None = None,
        as_attachment: bool = False,
        extra_headers: Mapping[str, str] | None = None,
    ) -> None:
        self._proxy = proxy
        self._format = fmt
        self._source = source
        self._title = title
        self._as_attachment = as_attachment
        self._extra_headers = dict(extra_headers or {})
        self.status_code = 200
        self.background = None
        self.raw_headers = []

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        sink = ASGIByteSink(scope, receive, send)
        await self._proxy.open_stream(
            self._format,
            sink,
            source=self._source,
            title=self._title,
            as_attachment=self._as_attachment,
            extra_headers=self._extra_headers,
        )
