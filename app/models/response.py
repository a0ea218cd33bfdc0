from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.internal import FormatCandidate


class FormatEntry(BaseModel):
    """Format as listed to the client"""
    model_config = ConfigDict(populate_by_name=True)

    format_id: str
    ext: str
    resolution: str
    is_audio: bool = Field(alias="isAudio")
    is_video: bool = Field(alias="isVideo")
    url: str

    @classmethod
    def from_candidate(cls, candidate: FormatCandidate) -> "FormatEntry":
        return cls(
            format_id=candidate.format_id,
            ext=candidate.ext,
            resolution=candidate.resolution,
            is_audio=candidate.is_audio,
            is_video=candidate.is_video,
            url=candidate.direct_url,
        )


class FormatsResponse(BaseModel):
    title: str
    thumbnail: Optional[str] = None
    formats: List[FormatEntry] = []


class AudioDownloadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    download_url: str = Field(alias="downloadUrl")


class VideoDownloadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    thumbnail: Optional[str] = None
    download_url: str = Field(alias="downloadUrl")
