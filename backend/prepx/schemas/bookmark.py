"""
Bookmark, library and spaced-review schemas
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


# ============== Enums ==============

class BookmarkContentTypeEnum(str, Enum):
    NOTE = "note"
    VIDEO = "video"
    QUESTION = "question"
    TOPIC = "topic"
    MINDMAP = "mindmap"
    PYQ = "pyq"
    CUSTOM = "custom"


class ReviewResponseEnum(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    AGAIN = "again"


class BulkActionEnum(str, Enum):
    MOVE = "move"
    ADD_TAGS = "add_tags"
    DELETE = "delete"


# ============== Bookmark Schemas ==============

class BookmarkCreate(BaseModel):
    content_type: BookmarkContentTypeEnum
    content_id: Optional[str] = Field(None, max_length=100)
    title: str = Field(..., min_length=1, max_length=500)
    snippet: Optional[str] = None
    full_content: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    collection_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('tags')
    @classmethod
    def normalise_tags(cls, v):
        return [t.strip().lower() for t in v if t and t.strip()]


class BookmarkUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    tags: Optional[List[str]] = None
    collection_id: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('tags')
    @classmethod
    def normalise_tags(cls, v):
        if v is None:
            return v
        return [t.strip().lower() for t in v if t and t.strip()]


class BookmarkToggle(BaseModel):
    content_type: BookmarkContentTypeEnum
    content_id: str
    title: str = Field(..., min_length=1, max_length=500)
    snippet: Optional[str] = None
    full_content: Optional[str] = None
    url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class BookmarkResponse(BaseModel):
    id: str
    content_type: str
    content_id: Optional[str] = None
    title: str
    snippet: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = []
    collection_id: Optional[str] = None
    context: Dict[str, Any] = {}
    access_count: int = 0
    last_accessed_at: Optional[datetime] = None
    ease_factor: float
    interval_days: int
    review_count: int = 0
    next_review_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None
    bookmarked_at: datetime

    class Config:
        from_attributes = True


class BookmarkDetailResponse(BookmarkResponse):
    full_content: Optional[str] = None


# ============== Collection Schemas ==============

class CollectionCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=16)
    color: Optional[str] = Field(None, max_length=16)


class CollectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=16)
    color: Optional[str] = Field(None, max_length=16)
    sort_order: Optional[int] = None


class CollectionResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    icon: str
    color: str
    sort_order: int = 0
    bookmark_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class BulkActionRequest(BaseModel):
    action: BulkActionEnum
    bookmark_ids: List[str] = Field(default_factory=list)
    collection_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


# ============== Review Schemas ==============

class ReviewSubmit(BaseModel):
    response: ReviewResponseEnum
    review_time_seconds: Optional[int] = Field(None, ge=0)


class ReviewInitialize(BaseModel):
    bookmark_ids: Optional[List[str]] = None


# ============== Tag Schemas ==============

class TagRename(BaseModel):
    old_tag: str = Field(..., min_length=1)
    new_tag: str = Field(..., min_length=1)


class TagMerge(BaseModel):
    source_tags: List[str] = Field(..., min_length=1)
    target_tag: str = Field(..., min_length=1)
