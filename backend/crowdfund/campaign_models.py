from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from .database import Base
import datetime
import enum


class CampaignStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    REJECTED = "rejected"


# statuses in which a campaign still takes money
OPEN_STATUSES = (CampaignStatus.PENDING.value, CampaignStatus.ACTIVE.value)


class Campaign(Base):
    __tablename__ = 'campaigns'
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=True)
    goal_amount = Column(Float, nullable=False)
    # only ever increased by confirmed donations
    current_amount = Column(Float, nullable=False, default=0.0)
    status = Column(String(50), nullable=False, default=CampaignStatus.PENDING.value, index=True)
    deadline = Column(DateTime, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verified_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    rejection_reason = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    owner = relationship('User', foreign_keys=[owner_id])
    donors = relationship(
        'CampaignDonor',
        back_populates='campaign',
        order_by='CampaignDonor.donated_at',
        cascade='all, delete-orphan',
    )

    @property
    def percent_funded(self) -> float:
        if not self.goal_amount:
            return 0.0
        return round((self.current_amount or 0) / self.goal_amount * 100, 2)

    def is_open_for_donations(self, now=None) -> bool:
        now = now or datetime.datetime.utcnow()
        return self.status in OPEN_STATUSES and self.deadline > now


class CampaignDonor(Base):
    """Display copy of a donation, embedded in the campaign page."""
    __tablename__ = 'campaign_donors'
    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey('campaigns.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    amount = Column(Float, nullable=False)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    donated_at = Column(DateTime, default=datetime.datetime.utcnow)

    campaign = relationship('Campaign', back_populates='donors')
    user = relationship('User')
