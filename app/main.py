import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from app.api import health, media, stream
from app.api.deps import get_http_client
from app.config.settings import config
from app.core.errors import InvalidInput, RelayAPIError
from app.core.logging import log_error, log_warning, logger, setup_logging
from app.core.state import state
from app.i18n import i18n
from app.services.ytdlp import detect_ytdlp_version
from app.utils.locale import get_locale


class RequestIdMiddleware:
    """Tag every HTTP request with a short id for log correlation"""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            scope.setdefault("state", {})["request_id"] = uuid.uuid4().hex[:12]
        await self.app(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    get_http_client()
    state.ytdlp_version = await detect_ytdlp_version()
    logger.info(f"yt-dlp {state.ytdlp_version}, listening for requests")
    yield
    if state.http_client is not None:
        await state.http_client.aclose()
        state.http_client = None


app = FastAPI(
    title=config.api.title,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    log_warning(request, f"Rejected request: {exc.errors()}")
    locale = get_locale(request.headers.get("accept-language"))
    return JSONResponse(
        status_code=InvalidInput.status_code,
        content={"error": i18n.get("error.missing_url", locale=locale)},
    )


@app.exception_handler(RelayAPIError)
async def relay_error_handler(request: Request, exc: RelayAPIError):
    if isinstance(exc, InvalidInput):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    log_error(request, f"Unhandled {type(exc).__name__}: {exc}")
    locale = get_locale(request.headers.get("accept-language"))
    return JSONResponse(status_code=exc.status_code, content={"error": i18n.get("error.internal", locale=locale)})


# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(media.router, prefix="/api", tags=["Media"])
app.include_router(stream.router, prefix="/api", tags=["Stream"])
