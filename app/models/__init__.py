from .internal import FormatCandidate, Intent, MediaDescriptor, ResolverOptions
from .request import MediaRequest
from .response import AudioDownloadResponse, FormatEntry, FormatsResponse, VideoDownloadResponse

__all__ = [
    "AudioDownloadResponse",
    "FormatCandidate",
    "FormatEntry",
    "FormatsResponse",
    "Intent",
    "MediaDescriptor",
    "MediaRequest",
    "ResolverOptions",
    "VideoDownloadResponse",
]
