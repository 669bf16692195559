from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .database import Base
import datetime
import enum


class PaymentStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PENDING = "pending"


class Donation(Base):
    __tablename__ = 'donations'
    id = Column(Integer, primary_key=True, index=True)
    donor_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    campaign_id = Column(Integer, ForeignKey('campaigns.id'), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(10), default='INR')
    # gateway payment id; unique so a payment can only be credited once
    payment_id = Column(String(200), nullable=False, unique=True, index=True)
    order_id = Column(String(200), nullable=True)
    signature = Column(String(200), nullable=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    message = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    donor = relationship('User')
    campaign = relationship('Campaign')
