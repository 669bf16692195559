from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
import datetime
from .comment_models import ReportReason
from .user_schemas import UserPublic


def _strip(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError('Comment must be between 1 and 1000 characters')
    return v


class CommentCreate(BaseModel):
    campaign_id: int = Field(..., alias='campaignId')
    content: str = Field(..., max_length=1000)
    parent_comment_id: Optional[int] = Field(None, alias='parentComment')

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v):
        return _strip(v)


class CommentUpdate(BaseModel):
    content: str = Field(..., max_length=1000)

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v):
        return _strip(v)


class CommentReportCreate(BaseModel):
    reason: ReportReason


class CommentModerate(BaseModel):
    remove: bool = False


class Reply(BaseModel):
    id: int
    campaign_id: int
    author: UserPublic
    content: str
    parent_comment_id: Optional[int] = None
    is_edited: bool
    edited_at: Optional[datetime.datetime] = None
    like_count: int
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class Comment(Reply):
    reply_count: int
    replies: List[Reply] = []


class ReportedComment(Reply):
    is_reported: bool
    is_moderated: bool
    is_deleted: bool
    report_count: int
    moderated_by_id: Optional[int] = None
    moderated_at: Optional[datetime.datetime] = None


class LikeResult(BaseModel):
    message: str
    is_liked: bool
    like_count: int
