"""
Donation ledger.

A confirmed payment becomes exactly one ``Donation`` row. The same
transaction bumps the campaign's raised amount, records the donor entry
shown on the campaign page and, when the goal is met, marks the campaign
completed. Either all of it is committed or none of it is.
"""
import datetime
import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .campaign_models import Campaign, CampaignDonor, CampaignStatus, OPEN_STATUSES
from .donation_models import Donation, PaymentStatus

logger = logging.getLogger(__name__)

MILESTONES = (25, 50, 75, 100)


class PaymentIntegrityError(Exception):
    """The confirmation can't be credited. Nothing was written."""


class InvalidSignature(PaymentIntegrityError):
    def __init__(self):
        super().__init__("Invalid payment signature")


class DuplicatePayment(PaymentIntegrityError):
    def __init__(self, payment_id: str):
        super().__init__("Donation already processed")
        self.payment_id = payment_id


class InvalidAmount(PaymentIntegrityError):
    def __init__(self, amount):
        super().__init__(f"Invalid donation amount: {amount}")


class CampaignNotFound(LookupError):
    pass


@dataclass
class ConfirmedDonation:
    donation: Donation
    campaign: Campaign
    previous_amount: float
    new_amount: float
    completed: bool
    milestones: List[int] = field(default_factory=list)


def funded_percentage(amount: float, goal: float) -> float:
    if not goal or goal <= 0:
        return 0.0
    return amount / goal * 100


def crossed_milestones(previous_amount: float, new_amount: float, goal: float,
                       thresholds: Sequence[int] = MILESTONES) -> List[int]:
    """Thresholds t with previous% < t <= new%. Exact percentages, no rounding."""
    if new_amount <= previous_amount or not goal or goal <= 0:
        return []
    before = funded_percentage(previous_amount, goal)
    after = funded_percentage(new_amount, goal)
    return [t for t in thresholds if before < t <= after]


def find_by_payment_id(db: Session, payment_id: str):
    return db.query(Donation).filter(Donation.payment_id == payment_id).first()


def confirm_donation(
    db: Session,
    gateway,
    *,
    donor_id: int,
    campaign_id: int,
    order_id: str,
    payment_id: str,
    signature: str,
    amount: float,
    message: str = "",
    is_anonymous: bool = False,
    currency: str = "INR",
) -> ConfirmedDonation:
    # 1. authenticity
    if not gateway.verify_signature(order_id, payment_id, signature):
        logger.warning(f"Rejected payment {payment_id}: signature mismatch (order {order_id})")
        raise InvalidSignature()

    # 2. replay / double submit
    if find_by_payment_id(db, payment_id) is not None:
        logger.info(f"Rejected payment {payment_id}: already processed")
        raise DuplicatePayment(payment_id)

    if amount is None or amount <= 0:
        raise InvalidAmount(amount)

    campaign = db.get(Campaign, campaign_id)
    if campaign is None:
        raise CampaignNotFound(campaign_id)

    now = datetime.datetime.utcnow()
    try:
        # 3. ledger row; the unique payment_id catches a concurrent duplicate
        donation = Donation(
            donor_id=donor_id,
            campaign_id=campaign_id,
            amount=amount,
            currency=currency,
            payment_id=payment_id,
            order_id=order_id,
            signature=signature,
            payment_status=PaymentStatus.SUCCEEDED.value,
            is_anonymous=is_anonymous,
            message=message or None,
        )
        db.add(donation)
        db.flush()

        # 4. aggregate, incremented in SQL rather than read-modify-write
        db.execute(
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .values(current_amount=Campaign.current_amount + amount, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        db.add(CampaignDonor(
            campaign_id=campaign_id,
            user_id=donor_id,
            amount=amount,
            is_anonymous=is_anonymous,
            donated_at=now,
        ))
        new_amount = db.execute(
            select(Campaign.current_amount).where(Campaign.id == campaign_id)
        ).scalar_one()

        # 5. goal check; the status guard makes the transition happen once
        completed = db.execute(
            update(Campaign)
            .where(
                Campaign.id == campaign_id,
                Campaign.current_amount >= Campaign.goal_amount,
                Campaign.status.in_(OPEN_STATUSES),
            )
            .values(status=CampaignStatus.COMPLETED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount == 1

        db.commit()
    except IntegrityError:
        db.rollback()
        if find_by_payment_id(db, payment_id) is None:
            raise
        logger.info(f"Rejected payment {payment_id}: lost race to a concurrent confirmation")
        raise DuplicatePayment(payment_id)
    except Exception:
        db.rollback()
        raise

    db.refresh(donation)
    db.refresh(campaign)
    previous_amount = new_amount - amount
    milestones = crossed_milestones(previous_amount, new_amount, campaign.goal_amount)
    logger.info(
        f"Donation {donation.id} recorded: {amount} to campaign {campaign_id} "
        f"({previous_amount} -> {new_amount}/{campaign.goal_amount})"
    )
    if completed:
        logger.info(f"Campaign {campaign_id} reached its goal and is now completed")
    return ConfirmedDonation(
        donation=donation,
        campaign=campaign,
        previous_amount=previous_amount,
        new_amount=new_amount,
        completed=completed,
        milestones=milestones,
    )


def succeeded_total(db: Session, campaign_id: int) -> float:
    total = db.query(func.coalesce(func.sum(Donation.amount), 0.0)).filter(
        Donation.campaign_id == campaign_id,
        Donation.payment_status == PaymentStatus.SUCCEEDED.value,
    ).scalar()
    return float(total or 0.0)
