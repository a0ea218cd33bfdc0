from pydantic import BaseModel, Field, StrictStr


class MediaRequest(BaseModel):
    url: StrictStr = Field(..., min_length=1, description="Video page URL")
