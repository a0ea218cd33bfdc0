import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional, Protocol
from urllib.parse import urlparse

import httpx

from app.config.settings import config
from app.core.errors import TruncatedRelay, UpstreamUnreachable
from app.core.security import SecurityValidator, UrlValidationResult
from app.utils.filename import sanitize_filename
from app.utils.locale import safe_url_for_log

logger = logging.getLogger(__name__)

RELAY_EXT = "mp4"
RELAY_MEDIA_TYPE = "video/mp4"


class UpstreamBody(Protocol):
    """An open upstream response whose headers have arrived"""
    headers: Dict[str, str]

    def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        ...  # pragma: no cover

    async def aclose(self) -> None:
        ...  # pragma: no cover


class StreamFetcher(Protocol):
    """Capability that opens a streaming GET against a direct media URL"""

    async def open(self, url: str) -> UpstreamBody:
        ...  # pragma: no cover


class HttpxUpstreamBody:
    """UpstreamBody over a streamed httpx response"""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.headers = {k.lower(): v for k, v in response.headers.items()}

    async def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes(chunk_size=chunk_size):
                yield chunk
        except httpx.HTTPError as e:
            raise TruncatedRelay(f"upstream dropped mid-body: {e!r}") from e

    async def aclose(self) -> None:
        await self.response.aclose()


class HttpxStreamFetcher:
    """StreamFetcher backed by a shared httpx.AsyncClient"""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @staticmethod
    def _get_base_headers(url: str) -> Dict[str, str]:
        parsed = urlparse(url)
        return {
            "User-Agent": config.relay.user_agent,
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "identity",
            "Referer": f"{parsed.scheme}://{parsed.netloc}/",
        }

    async def _send(self, url: str) -> httpx.Response:
        try:
            req = self.client.build_request("GET", url, headers=self._get_base_headers(url))
            return await self.client.send(req, stream=True, follow_redirects=False)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise UpstreamUnreachable(f"request to {safe_url_for_log(url)} failed: {e!r}") from e

    async def open(self, url: str) -> HttpxUpstreamBody:
        """
        Follow redirects by hand so every hop passes the SSRF check,
        not only the URL the client handed in.
        """
        response = await self._send(url)
        hops = 0
        while response.has_redirect_location:
            await response.aclose()
            hops += 1
            if hops > config.relay.max_redirects:
                raise UpstreamUnreachable(
                    f"more than {config.relay.max_redirects} redirects from {safe_url_for_log(url)}"
                )

            next_url = str(response.next_request.url)
            validation_result = await SecurityValidator.validate_url(next_url)
            if validation_result != UrlValidationResult.OK:
                raise UpstreamUnreachable(
                    f"redirect to {safe_url_for_log(next_url)} rejected ({validation_result.name})"
                )
            url = next_url
            response = await self._send(url)

        if response.status_code >= 400:
            await response.aclose()
            raise UpstreamUnreachable(
                f"upstream {safe_url_for_log(url)} answered HTTP {response.status_code}"
            )

        return HttpxUpstreamBody(response)


def build_stream_client() -> httpx.AsyncClient:
    timeout = httpx.Timeout(
        config.relay.read_timeout_seconds,
        connect=config.relay.connect_timeout_seconds,
    )
    return httpx.AsyncClient(follow_redirects=False, timeout=timeout)


@dataclass
class RelayStream:
    """Headers decided up front plus the body iterator feeding the sink"""
    headers: Dict[str, str]
    media_type: str
    body: AsyncIterator[bytes]
    close: Callable[[], Awaitable[None]]


class StreamRelay:
    """Pipe a direct media URL to the client without buffering the body"""

    def __init__(self, fetcher: StreamFetcher, chunk_size: Optional[int] = None):
        self.fetcher = fetcher
        self.chunk_size = chunk_size or config.relay.chunk_size

    async def open(
        self,
        direct_url: str,
        display_title: str,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> RelayStream:
        """
        Open the upstream connection and return the relay headers and body.
        Raises UpstreamUnreachable before anything is sent to the client.
        """
        upstream = await self.fetcher.open(direct_url)

        headers = {
            "Content-Disposition": f"attachment; filename={sanitize_filename(display_title, RELAY_EXT)}",
            "X-Content-Type-Options": "nosniff",
            "Cache-Control": "no-cache",
        }
        # A decoded body no longer matches the upstream length
        content_length = upstream.headers.get("content-length")
        if content_length and content_length.isdigit() and "content-encoding" not in upstream.headers:
            headers["Content-Length"] = content_length

        return RelayStream(
            headers=headers,
            media_type=RELAY_MEDIA_TYPE,
            body=self._forward(upstream, direct_url, is_disconnected),
            close=upstream.aclose,
        )

    async def _forward(
        self,
        upstream: UpstreamBody,
        direct_url: str,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]],
    ) -> AsyncIterator[bytes]:
        sent = 0
        try:
            async for chunk in upstream.iter_chunks(self.chunk_size):
                if is_disconnected is not None and await is_disconnected():
                    logger.info(f"Client went away after {sent} bytes from {safe_url_for_log(direct_url)}")
                    return
                yield chunk
                sent += len(chunk)
        except TruncatedRelay as e:
            logger.error(f"Relay truncated after {sent} bytes: {e}")
            raise
        finally:
            await upstream.aclose()
