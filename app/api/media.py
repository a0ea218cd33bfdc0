import functools
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Request

from app.api.deps import get_format_resolver
from app.core.errors import ResolutionError
from app.core.logging import log_error, log_info
from app.core.security import SecurityValidator, UrlValidationResult
from app.i18n import i18n
from app.models.internal import Intent, MediaDescriptor
from app.models.request import MediaRequest
from app.models.response import (
    AudioDownloadResponse,
    FormatEntry,
    FormatsResponse,
    VideoDownloadResponse,
)
from app.services.resolver import FormatResolver, select_direct_url
from app.utils.locale import get_locale, safe_url_for_log
from app.utils.url import build_relay_ticket, normalize_reference

router = APIRouter()


async def _resolve(
    request: Request,
    media_request: MediaRequest,
    intent: Intent,
    resolver: FormatResolver,
    failure_key: str,
    _: Callable[..., str],
) -> MediaDescriptor:
    """Normalize, guard and resolve; any failure becomes a generic 500"""
    url = normalize_reference(media_request.url)

    if url.startswith(("http://", "https://")):
        validation_result = await SecurityValidator.validate_url(url)
        if validation_result == UrlValidationResult.BLOCKED:
            raise HTTPException(status_code=403, detail=_("error.private_ip"))

    log_info(request, i18n.get("log.resolving", url=safe_url_for_log(url), intent=intent.value))

    try:
        descriptor = await resolver.resolve(url, intent)
    except ResolutionError as e:
        log_error(request, f"{type(e).__name__} for {safe_url_for_log(url)}: {e}")
        raise HTTPException(status_code=500, detail=_(failure_key))

    log_info(request, i18n.get("log.resolved", title=descriptor.title, count=len(descriptor.formats)))
    return descriptor


@router.post("/formats", response_model=FormatsResponse)
async def list_formats(
    request: Request,
    media_request: MediaRequest,
    resolver: FormatResolver = Depends(get_format_resolver),
):
    """List every format the origin advertises"""
    _ = functools.partial(i18n.get, locale=get_locale(request.headers.get("accept-language")))

    descriptor = await _resolve(request, media_request, Intent.LIST_FORMATS, resolver, "error.formats_failed", _)

    return FormatsResponse(
        title=descriptor.title,
        thumbnail=descriptor.thumbnail,
        formats=[FormatEntry.from_candidate(f) for f in descriptor.formats],
    )


@router.post("/download-audio", response_model=AudioDownloadResponse)
async def download_audio(
    request: Request,
    media_request: MediaRequest,
    resolver: FormatResolver = Depends(get_format_resolver),
):
    """Resolve an audio-only format and hand back a relay ticket"""
    _ = functools.partial(i18n.get, locale=get_locale(request.headers.get("accept-language")))

    descriptor = await _resolve(request, media_request, Intent.AUDIO_ONLY, resolver, "error.audio_failed", _)
    direct_url = select_direct_url(descriptor, Intent.AUDIO_ONLY)

    return AudioDownloadResponse(
        title=descriptor.title,
        download_url=build_relay_ticket(direct_url, descriptor.title),
    )


@router.post("/download", response_model=VideoDownloadResponse)
async def download_video(
    request: Request,
    media_request: MediaRequest,
    resolver: FormatResolver = Depends(get_format_resolver),
):
    """Resolve a muxed audio+video format and hand back a relay ticket"""
    _ = functools.partial(i18n.get, locale=get_locale(request.headers.get("accept-language")))

    descriptor = await _resolve(request, media_request, Intent.MUXED_VIDEO, resolver, "error.video_failed", _)
    direct_url = select_direct_url(descriptor, Intent.MUXED_VIDEO)

    return VideoDownloadResponse(
        title=descriptor.title,
        thumbnail=descriptor.thumbnail,
        download_url=build_relay_ticket(direct_url, descriptor.title),
    )
