import asyncio
import logging
from typing import Any, Dict, List, Optional

from app.config.settings import config
from app.core.errors import MalformedUpstreamResponse, ResolutionFailed
from app.models.internal import (
    CODEC_NONE,
    CODEC_UNKNOWN,
    FormatCandidate,
    Intent,
    MediaDescriptor,
    ResolverOptions,
)
from app.services.ytdlp import MetadataResolver
from app.utils.locale import safe_url_for_log

logger = logging.getLogger(__name__)


def _codec(value: Any) -> Optional[str]:
    """Map the tool's ``"none"`` sentinel to None; a missing codec is unknown, not absent"""
    if value == CODEC_NONE:
        return None
    if not value:
        return CODEC_UNKNOWN
    return str(value)


def _resolution(raw: Dict[str, Any]) -> str:
    note = raw.get("format_note")
    if note:
        return str(note)
    return f"{raw.get('width') or 0}x{raw.get('height') or 0}"


def parse_format(raw: Dict[str, Any]) -> FormatCandidate:
    return FormatCandidate(
        format_id=str(raw.get("format_id") or ""),
        ext=str(raw.get("ext") or ""),
        video_codec=_codec(raw.get("vcodec")),
        audio_codec=_codec(raw.get("acodec")),
        resolution=_resolution(raw),
        direct_url=str(raw.get("url") or ""),
    )


def parse_descriptor(payload: Any) -> MediaDescriptor:
    """
    Validate the tool's JSON payload and convert it into a MediaDescriptor.
    Raises MalformedUpstreamResponse when title or url is missing.
    """
    if not isinstance(payload, dict):
        raise MalformedUpstreamResponse("payload is not an object")

    title = payload.get("title")
    if not isinstance(title, str) or not title:
        raise MalformedUpstreamResponse("payload has no title")

    canonical_url = payload.get("url")
    if not isinstance(canonical_url, str) or not canonical_url:
        raise MalformedUpstreamResponse("payload has no url")

    raw_formats = payload.get("formats")
    if raw_formats is None:
        raw_formats = []
    if not isinstance(raw_formats, list):
        raise MalformedUpstreamResponse("formats is not a list")

    formats: List[FormatCandidate] = []
    for raw in raw_formats:
        if not isinstance(raw, dict):
            logger.debug(f"Skipping non-object format entry: {raw!r:.80}")
            continue
        formats.append(parse_format(raw))

    thumbnail = payload.get("thumbnail")

    return MediaDescriptor(
        title=title,
        thumbnail=thumbnail if isinstance(thumbnail, str) else None,
        canonical_url=canonical_url,
        formats=tuple(formats),
    )


def select_direct_url(descriptor: MediaDescriptor, intent: Intent) -> str:
    """
    Pick the first matching format in upstream order, else fall back to
    the descriptor's canonical URL. Upstream order is taken as the
    quality preference; nothing is re-sorted.
    """
    if intent == Intent.AUDIO_ONLY:
        for f in descriptor.formats:
            if f.is_audio and f.ext == config.ytdlp.audio_ext:
                return f.direct_url or descriptor.canonical_url
        return descriptor.canonical_url

    if intent == Intent.MUXED_VIDEO:
        for f in descriptor.formats:
            if (
                f.ext == config.ytdlp.video_ext
                and f.audio_codec is not None
                and f.video_codec is not None
                and f.direct_url
            ):
                return f.direct_url
        return descriptor.canonical_url

    raise ValueError(f"No format selection for intent {intent.value}")


class FormatResolver:
    """Resolve a media reference into a validated MediaDescriptor"""

    def __init__(
        self,
        metadata_resolver: MetadataResolver,
        retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
    ):
        self.metadata_resolver = metadata_resolver
        self.retries = config.resolver.retries if retries is None else retries
        self.retry_backoff = config.resolver.retry_backoff_seconds if retry_backoff is None else retry_backoff

    async def resolve(self, url: str, intent: Intent) -> MediaDescriptor:
        options = ResolverOptions.for_intent(intent)
        payload = await self._fetch_with_retry(url, options)
        return parse_descriptor(payload)

    async def _fetch_with_retry(self, url: str, options: ResolverOptions) -> Dict[str, Any]:
        # Only invocation failures are retried; a malformed payload is final.
        attempt = 0
        while True:
            try:
                return await self.metadata_resolver.fetch(url, options)
            except ResolutionFailed as e:
                if attempt >= self.retries:
                    raise
                delay = self.retry_backoff * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"Resolution of {safe_url_for_log(url)} failed ({e}), "
                    f"retry {attempt}/{self.retries} in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
