from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
import datetime
from .complaint_models import ComplaintStatus


class ComplaintCreate(BaseModel):
    campaign_id: int = Field(..., alias='campaign')
    subject: str = Field(..., max_length=200)
    description: str = Field(..., max_length=1000)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('subject')
    @classmethod
    def subject_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Subject must be between 1 and 200 characters')
        return v

    @field_validator('description')
    @classmethod
    def description_long_enough(cls, v):
        v = v.strip()
        if len(v) < 10:
            raise ValueError('Description must be between 10 and 1000 characters')
        return v


class ComplaintUpdate(BaseModel):
    status: ComplaintStatus
    admin_notes: Optional[str] = Field(None, alias='adminNotes', max_length=500)

    model_config = ConfigDict(populate_by_name=True)


class Complaint(BaseModel):
    id: int
    user_id: int
    campaign_id: int
    subject: str
    description: str
    status: ComplaintStatus
    admin_notes: Optional[str] = None
    resolved_by_id: Optional[int] = None
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None

    model_config = ConfigDict(from_attributes=True)
