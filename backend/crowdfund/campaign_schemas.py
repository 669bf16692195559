from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional
import datetime
from .campaign_models import CampaignStatus
from .user_schemas import UserPublic


class CampaignCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    category: Optional[str] = Field(None, max_length=100)
    goal_amount: float = Field(..., alias='goalAmount', ge=1)
    deadline: datetime.datetime

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('deadline')
    @classmethod
    def deadline_in_future(cls, v):
        # stored naive UTC
        if v.tzinfo is not None:
            v = v.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        if v <= datetime.datetime.utcnow():
            raise ValueError('deadline must be in the future')
        return v


class DonorEntry(BaseModel):
    user_id: Optional[int] = None
    amount: float
    is_anonymous: bool
    donated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode='after')
    def hide_anonymous_donor(self):
        if self.is_anonymous:
            self.user_id = None
        return self


class Campaign(BaseModel):
    id: int
    owner_id: int
    owner: Optional[UserPublic] = None
    title: str
    description: str
    category: Optional[str] = None
    goal_amount: float
    current_amount: float
    percent_funded: float
    status: CampaignStatus
    deadline: datetime.datetime
    is_verified: bool
    rejection_reason: Optional[str] = None
    created_at: datetime.datetime
    donors: List[DonorEntry] = []

    model_config = ConfigDict(from_attributes=True)


class CampaignSummary(BaseModel):
    id: int
    title: str
    status: CampaignStatus
    current_amount: float
    goal_amount: float

    model_config = ConfigDict(from_attributes=True)


class CampaignVerify(BaseModel):
    is_verified: bool = Field(..., alias='isVerified')
    rejection_reason: Optional[str] = Field(None, alias='rejectionReason', max_length=500)

    model_config = ConfigDict(populate_by_name=True)


class CampaignVerification(BaseModel):
    id: int
    status: CampaignStatus
    is_verified: bool
    verified_by_id: Optional[int] = None
    verified_at: Optional[datetime.datetime] = None
    rejection_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CampaignStatusUpdate(BaseModel):
    status: CampaignStatus

    @field_validator('status')
    @classmethod
    def admin_settable(cls, v):
        if v not in (CampaignStatus.ACTIVE, CampaignStatus.COMPLETED,
                     CampaignStatus.CANCELLED, CampaignStatus.EXPIRED):
            raise ValueError('status must be active, completed, cancelled or expired')
        return v
