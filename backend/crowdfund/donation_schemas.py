from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional
import datetime
from .donation_models import PaymentStatus
from .user_schemas import UserPublic
from .campaign_schemas import CampaignSummary


class OrderCreate(BaseModel):
    campaign_id: int = Field(..., alias='campaignId')
    amount: float = Field(..., ge=1)
    is_anonymous: bool = Field(False, alias='isAnonymous')

    model_config = ConfigDict(populate_by_name=True)


class Order(BaseModel):
    order_id: str
    amount: int  # minor units
    currency: str
    key_id: str


class PaymentConfirmation(BaseModel):
    order_id: str = Field(..., alias='orderId', min_length=1)
    payment_id: str = Field(..., alias='paymentId', min_length=1)
    signature: str = Field(..., min_length=1)
    campaign_id: int = Field(..., alias='campaignId')
    amount: float = Field(..., ge=1)
    message: str = Field('', max_length=500)
    is_anonymous: bool = Field(False, alias='isAnonymous')

    model_config = ConfigDict(populate_by_name=True)


class Donation(BaseModel):
    id: int
    donor_id: int
    campaign_id: int
    amount: float
    currency: str
    payment_id: str
    order_id: Optional[str] = None
    payment_status: PaymentStatus
    is_anonymous: bool
    message: Optional[str] = None
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class MyDonation(Donation):
    campaign: Optional[CampaignSummary] = None


class PublicDonation(BaseModel):
    """A donation as shown on the campaign page."""
    id: int
    campaign_id: int
    amount: float
    message: Optional[str] = None
    is_anonymous: bool
    donor: Optional[UserPublic] = None
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode='after')
    def hide_anonymous_donor(self):
        if self.is_anonymous:
            self.donor = UserPublic(name='Anonymous')
        return self


class DonationConfirmed(BaseModel):
    message: str
    donation: Donation
    campaign_status: str
    current_amount: float
    milestones: List[int] = []
