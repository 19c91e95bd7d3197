from pydantic import BaseModel, Field
from typing import Optional
from datetime import date


class DocumentaryTrigger(BaseModel):
    week_start: Optional[date] = Field(None, description="Any date in the target week; defaults to this week")


class DocumentaryPublish(BaseModel):
    video_url: str = Field(..., min_length=1)
    duration: Optional[int] = Field(None, ge=0)
    thumbnail_url: Optional[str] = None
