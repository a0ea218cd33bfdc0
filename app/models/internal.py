from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from app.config.settings import config

CODEC_NONE = "none"
CODEC_UNKNOWN = "unknown"


class Intent(str, Enum):
    """Caller's declared purpose for a resolution call"""
    LIST_FORMATS = "list_formats"
    AUDIO_ONLY = "audio_only"
    MUXED_VIDEO = "muxed_video"


class ResolverOptions(BaseModel):
    """Option set handed to the metadata tool for one resolution call"""
    model_config = ConfigDict(frozen=True)

    dump_single_json: bool = True
    no_warnings: bool = False
    prefer_free_formats: bool = False
    no_check_certificates: bool = False
    no_playlist: bool = True
    extract_audio: bool = False
    audio_format: Optional[str] = None
    format_selector: Optional[str] = None
    extra_headers: Tuple[str, ...] = ()

    @classmethod
    def for_intent(cls, intent: Intent) -> "ResolverOptions":
        headers = (
            f"referer:{config.resolver.referer}",
            f"user-agent:{config.resolver.user_agent}",
        )

        if intent == Intent.AUDIO_ONLY:
            return cls(
                extract_audio=True,
                audio_format=config.ytdlp.audio_format,
                no_check_certificates=True,
                prefer_free_formats=True,
                format_selector=config.ytdlp.default_audio_selector,
                extra_headers=headers,
            )

        if intent == Intent.MUXED_VIDEO:
            return cls(
                no_check_certificates=True,
                no_warnings=True,
                prefer_free_formats=True,
                format_selector=config.ytdlp.default_format,
                extra_headers=headers,
            )

        return cls(
            no_warnings=True,
            prefer_free_formats=True,
            format_selector=config.ytdlp.default_format,
            extra_headers=headers,
        )


class FormatCandidate(BaseModel):
    """One upstream-advertised encoding.

    ``video_codec``/``audio_codec`` are ``None`` when the track is absent.
    ``direct_url`` is ephemeral and must not outlive the request.
    """
    model_config = ConfigDict(frozen=True)

    format_id: str
    ext: str
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    resolution: str
    direct_url: str = ""

    @property
    def is_audio(self) -> bool:
        return self.video_codec is None and self.audio_codec is not None

    @property
    def is_video(self) -> bool:
        return self.video_codec is not None


class MediaDescriptor(BaseModel):
    """Validated result of resolving a media reference"""
    model_config = ConfigDict(frozen=True)

    title: str
    thumbnail: Optional[str] = None
    canonical_url: str
    formats: Tuple[FormatCandidate, ...] = ()
