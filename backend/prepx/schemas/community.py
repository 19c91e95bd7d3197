from pydantic import BaseModel, Field
from typing import Optional, List, Union


class DiscussionCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category: str = "general"
    # Dashboard sends either a list or "tag1, tag2"
    tags: Union[List[str], str, None] = None


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
