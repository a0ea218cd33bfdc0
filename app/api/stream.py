import functools
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from app.api.deps import get_stream_relay
from app.core.errors import InvalidInput, UpstreamUnreachable
from app.core.logging import log_error, log_info
from app.core.security import SecurityValidator, UrlValidationResult
from app.i18n import i18n
from app.services.relay import StreamRelay
from app.utils.filename import DEFAULT_TITLE
from app.utils.locale import get_locale, safe_url_for_log

router = APIRouter()


@router.get("/stream")
async def stream_media(
    request: Request,
    video_url: Optional[str] = Query(None, alias="videoUrl"),
    title: Optional[str] = Query(None),
    relay: StreamRelay = Depends(get_stream_relay),
):
    """Relay the upstream media bytes to the client as an attachment."""

    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    if not video_url:
        raise InvalidInput(_("error.missing_video_url"))

    validation_result = await SecurityValidator.validate_url(video_url)
    if validation_result == UrlValidationResult.BLOCKED:
        raise HTTPException(status_code=403, detail=_("error.private_ip"))
    if validation_result == UrlValidationResult.INVALID:
        raise HTTPException(status_code=400, detail=_("error.invalid_url"))

    display_title = title or DEFAULT_TITLE
    log_info(request, i18n.get("log.relaying", url=safe_url_for_log(video_url), title=display_title))

    try:
        relay_stream = await relay.open(video_url, display_title, is_disconnected=request.is_disconnected)
    except UpstreamUnreachable as e:
        log_error(request, f"Stream error: {e}")
        raise HTTPException(status_code=500, detail=_("error.stream_failed"))

    # Headers are final from here on; a later upstream failure truncates the body
    return StreamingResponse(
        relay_stream.body,
        media_type=relay_stream.media_type,
        headers=relay_stream.headers,
        background=BackgroundTask(relay_stream.close),
    )
