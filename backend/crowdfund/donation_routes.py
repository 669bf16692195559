"""
Donation endpoints: Razorpay order creation, payment confirmation and
donation listings.
"""
import logging
import time
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from . import campaign_models, donation_models, donation_schemas, ledger, user_models
from .auth import get_current_user, require_capability
from .config import Settings
from .database import get_db
from .dependencies import get_gateway, get_mailer, get_settings
from .notifications import CampaignSnapshot, Recipient, after_donation, unique_donor_recipients
from .pagination import paginate
from .payment_gateway import GatewayNotConfigured, PaymentGatewayError
from .reports import SummaryQuery, trailing_year_start
from .roles import Capability

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/donations", tags=["Donations"])

SUCCEEDED = donation_models.PaymentStatus.SUCCEEDED.value


def make_receipt(campaign_id: int) -> str:
    return f"don_{str(int(time.time() * 1000))[-8:]}_{campaign_id}"


def open_campaign_id(db: Session, campaign_id: int) -> int:
    campaign = db.get(campaign_models.Campaign, campaign_id)
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    if campaign.status not in campaign_models.OPEN_STATUSES:
        raise HTTPException(status_code=400, detail="Campaign is not accepting donations")
    if not campaign.is_open_for_donations():
        raise HTTPException(status_code=400, detail="Campaign deadline has passed")
    return campaign.id


@router.post("/create-order", response_model=donation_schemas.Order)
async def create_order(
    payload: donation_schemas.OrderCreate,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
    gateway=Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Open a gateway order the checkout widget will pay against"""
    # session work stays off the event loop
    campaign_id = await run_in_threadpool(open_campaign_id, db, payload.campaign_id)

    notes = {
        "campaignId": str(campaign_id),
        "userId": str(user.id),
        "isAnonymous": str(payload.is_anonymous).lower(),
    }
    try:
        order = await gateway.create_order(
            amount=round(payload.amount * 100),
            currency=settings.payment_currency,
            receipt=make_receipt(campaign_id),
            notes=notes,
        )
    except GatewayNotConfigured:
        raise HTTPException(status_code=503, detail="Payment gateway not configured. Please contact administrator.")
    except PaymentGatewayError as e:
        logger.error(f"Create order failed for campaign {campaign_id}: {e} (status={e.status_code}, code={e.code})")
        if e.status_code == 401:
            raise HTTPException(status_code=502, detail="Payment gateway configuration error. Please contact administrator.")
        raise HTTPException(status_code=502, detail=f"Payment gateway error: {e}")

    return {
        "order_id": order["id"],
        "amount": order["amount"],
        "currency": order["currency"],
        "key_id": gateway.key_id,
    }


@router.post("/verify-payment", response_model=donation_schemas.DonationConfirmed, status_code=201)
def verify_payment(
    payload: donation_schemas.PaymentConfirmation,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
    gateway=Depends(get_gateway),
    mailer=Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    """Check the gateway signature and credit the donation exactly once"""
    try:
        result = ledger.confirm_donation(
            db,
            gateway,
            donor_id=user.id,
            campaign_id=payload.campaign_id,
            order_id=payload.order_id,
            payment_id=payload.payment_id,
            signature=payload.signature,
            amount=payload.amount,
            message=payload.message,
            is_anonymous=payload.is_anonymous,
            currency=settings.payment_currency,
        )
    except GatewayNotConfigured:
        raise HTTPException(status_code=503, detail="Payment gateway not configured. Please contact administrator.")
    except ledger.PaymentIntegrityError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ledger.CampaignNotFound:
        raise HTTPException(status_code=404, detail="Campaign not found")

    campaign = result.campaign
    snapshot = CampaignSnapshot(
        id=campaign.id,
        title=campaign.title,
        current_amount=result.new_amount,
        goal_amount=campaign.goal_amount,
        url=settings.campaign_url(campaign.id),
    )
    recipients = []
    if result.milestones:
        try:
            recipients = unique_donor_recipients(db, campaign.id)
        except SQLAlchemyError:
            logger.exception(f"Could not load donors of campaign {campaign.id} for milestone emails")
    background_tasks.add_task(
        after_donation,
        mailer,
        Recipient(email=user.email, name=user.name),
        snapshot,
        payload.amount,
        result.milestones,
        recipients,
    )

    return {
        "message": "Donation successful!",
        "donation": result.donation,
        "campaign_status": campaign.status,
        "current_amount": result.new_amount,
        "milestones": result.milestones,
    }


@router.get("/campaign/{campaign_id}")
def list_campaign_donations(
    campaign_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = db.query(donation_models.Donation).filter(
        donation_models.Donation.campaign_id == campaign_id,
        donation_models.Donation.payment_status == SUCCEEDED,
    ).order_by(donation_models.Donation.created_at.desc(), donation_models.Donation.id.desc())
    items, pagination = paginate(q, page, limit)
    return {
        "donations": [donation_schemas.PublicDonation.model_validate(d) for d in items],
        "pagination": pagination,
    }


@router.get("/my-donations")
def my_donations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
):
    q = db.query(donation_models.Donation).filter(
        donation_models.Donation.donor_id == user.id,
        donation_models.Donation.payment_status == SUCCEEDED,
    ).order_by(donation_models.Donation.created_at.desc(), donation_models.Donation.id.desc())
    items, pagination = paginate(q, page, limit)
    return {
        "donations": [donation_schemas.MyDonation.model_validate(d) for d in items],
        "pagination": pagination,
    }


@router.get("/stats")
def donation_stats(
    db: Session = Depends(get_db),
    _admin: user_models.User = Depends(require_capability(Capability.VIEW_REPORTS)),
):
    Donation = donation_models.Donation
    succeeded = SummaryQuery(db, Donation).where(Donation.payment_status == SUCCEEDED)
    return {
        "total_donations": succeeded.count(),
        "total_amount": succeeded.total(Donation.amount),
        "monthly_donations": succeeded.since(Donation.created_at, trailing_year_start())
        .monthly(Donation.created_at, Donation.amount),
    }
