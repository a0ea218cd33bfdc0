from fastapi import APIRouter

from app.config.settings import config
from app.core.state import state
from app.i18n import i18n

router = APIRouter()


@router.get("/health")
async def health_check():
    """Lightweight health check"""
    return {
        "status": i18n.get("health.status"),
        "version": config.api.version,
        "ytdlp_version": state.ytdlp_version,
    }
