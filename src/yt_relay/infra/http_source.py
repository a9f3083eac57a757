"""httpx backed implementation of :class:`~yt_relay.core.protocols.ByteSource`.

Stream URLs handed out by YouTube are locked to the IP that resolved
them, so the server fetches the bytes itself.  httpx errors are mapped
to :class:`~yt_relay.exceptions.StreamTransportError`; nothing raw
escapes this module.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Mapping

import httpx

from yt_relay.exceptions import StreamTransportError

logger = logging.getLogger(__name__)

# ``InvalidURL`` is raised while building the request and is not an
# ``HTTPError``.
_UPSTREAM_ERRORS = (httpx.HTTPError, httpx.StreamError, httpx.InvalidURL)


class HttpxByteSource:
    """Streams one upstream URL with an ``httpx.AsyncClient``.

    Parameters
    ----------
    url:
        Playable media URL.
    headers:
        Extra request headers (the backend's ``http_headers``).
    range_header:
        The client's ``Range`` header, forwarded verbatim.
    transport:
        Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        url: str,
        *,
        headers: Iterable[tuple[str, str]] = (),
        range_header: str | None = None,
        chunk_size: int = 65536,
        timeout: float = 30.0,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._request_headers: dict[str, str] = {"Accept": "*/*"}
        if user_agent:
            self._request_headers["User-Agent"] = user_agent
        self._request_headers.update(dict(headers))
        if range_header:
            self._request_headers["Range"] = range_header
        self._chunk_size = chunk_size
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._response: httpx.Response | None = None
        self.status_code: int = 0
        self.headers: Mapping[str, str] = {}

    async def open(self) -> None:
        """Send the request and wait for the upstream response headers."""
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        try:
            request = self._client.build_request("GET", self._url, headers=self._request_headers)
            response = await self._client.send(request, stream=True)
        except _UPSTREAM_ERRORS as exc:
            await self.aclose()
            raise StreamTransportError(
                f"Upstream request failed: {exc}",
                hint="The stream URL may have expired; retry the request.",
            ) from exc

        self._response = response
        self.status_code = response.status_code
        self.headers = dict(response.headers)
        if response.status_code >= 400:
            await self.aclose()
            raise StreamTransportError(
                f"Upstream responded with HTTP {response.status_code}",
                hint="The stream URL may have expired; retry the request.",
            )
        logger.debug("Upstream %s answered %d", self._url[:80], response.status_code)

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        if self._response is None:
            raise StreamTransportError("Upstream stream was not opened.")
        try:
            async for chunk in self._response.aiter_bytes(chunk_size=self._chunk_size):
                yield chunk
        except _UPSTREAM_ERRORS as exc:
            raise StreamTransportError(f"Upstream read failed: {exc}") from exc

    async def aclose(self) -> None:
        response, self._response = self._response, None
        client, self._client = self._client, None
        if response is not None:
            await response.aclose()
        if client is not None:
            await client.aclose()
