import httpx

from app.core.state import state
from app.services.relay import HttpxStreamFetcher, StreamRelay, build_stream_client
from app.services.resolver import FormatResolver
from app.services.ytdlp import YtDlpMetadataResolver


def get_http_client() -> httpx.AsyncClient:
    """Process-wide client for relay fetches (keep-alive across requests)"""
    if state.http_client is None or state.http_client.is_closed:
        state.http_client = build_stream_client()
    return state.http_client


def get_format_resolver() -> FormatResolver:
    return FormatResolver(YtDlpMetadataResolver())


def get_stream_relay() -> StreamRelay:
    return StreamRelay(HttpxStreamFetcher(get_http_client()))
