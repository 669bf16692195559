"""
Admin console: user and campaign verification, complaint handling,
comment moderation and the dashboard reports.
"""
import datetime
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional
from . import (
    campaign_models, campaign_schemas, comment_models, comment_schemas,
    complaint_models, complaint_schemas, donation_models, donation_schemas,
    ledger, user_models, user_schemas,
)
from .auth import require_capability
from .database import get_db
from .moderation import (
    InvalidTransition, moderate_comment, set_campaign_status,
    transition_complaint, verify_campaign, verify_user,
)
from .pagination import paginate
from .reports import SummaryQuery, trailing_year_start
from .roles import Capability, Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])

User = user_models.User
Campaign = campaign_models.Campaign
Complaint = complaint_models.Complaint
Comment = comment_models.Comment
Donation = donation_models.Donation

SUCCEEDED = donation_models.PaymentStatus.SUCCEEDED.value


def _get_or_404(db: Session, model, obj_id: int, label: str):
    obj = db.get(model, obj_id)
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


# --- dashboard ---

@router.get("/stats")
def dashboard_stats(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.VIEW_REPORTS)),
):
    donations = SummaryQuery(db, Donation).where(Donation.payment_status == SUCCEEDED)
    return {
        "total_users": SummaryQuery(db, User).count(),
        "total_campaigns": SummaryQuery(db, Campaign).count(),
        "total_donations": donations.count(),
        "total_amount": donations.total(Donation.amount),
        "pending_complaints": SummaryQuery(db, Complaint)
        .where(Complaint.status == complaint_models.ComplaintStatus.PENDING.value).count(),
        "campaigns_by_status": SummaryQuery(db, Campaign).count_by(Campaign.status),
        "users_by_role": SummaryQuery(db, User).count_by(User.role),
        "monthly_signups": SummaryQuery(db, User)
        .since(User.created_at, trailing_year_start()).monthly(User.created_at),
    }


# --- users ---

@router.get("/users")
def list_users(
    search: Optional[str] = None,
    role: Optional[Role] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    q = db.query(User)
    if role:
        q = q.filter(User.role == role.value)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.name.ilike(like), User.email.ilike(like)))
    items, pagination = paginate(q.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    return {
        "users": [user_schemas.User.model_validate(u) for u in items],
        "pagination": pagination,
    }


@router.get("/donors/unverified")
def unverified_donors(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    q = db.query(User).filter(
        User.role == Role.DONOR.value,
        User.is_verified.is_(False),
    ).order_by(User.created_at.desc(), User.id.desc())
    items, pagination = paginate(q, page, limit)
    return {
        "donors": [user_schemas.User.model_validate(u) for u in items],
        "pagination": pagination,
    }


@router.get("/users/{user_id}", response_model=user_schemas.User)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    return _get_or_404(db, User, user_id, "User")


@router.put("/users/{user_id}", response_model=user_schemas.User)
def update_user(
    user_id: int,
    payload: user_schemas.UserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    user = _get_or_404(db, User, user_id, "User")
    if payload.role is not None:
        user.role = payload.role.value
    if payload.is_verified is not None:
        verify_user(user, admin, payload.is_verified, payload.rejection_reason)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin {admin.id} updated user {user.id}")
    return user


@router.put("/users/{user_id}/verify", response_model=user_schemas.User)
def verify_user_account(
    user_id: int,
    payload: user_schemas.UserVerify,
    db: Session = Depends(get_db),
    admin: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    user = _get_or_404(db, User, user_id, "User")
    verify_user(user, admin, payload.is_verified, payload.rejection_reason)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin {admin.id} {'verified' if payload.is_verified else 'rejected'} user {user.id}")
    return user


# --- campaigns ---

@router.get("/campaigns")
def list_all_campaigns(
    status: Optional[campaign_models.CampaignStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.VERIFY_CAMPAIGNS)),
):
    q = db.query(Campaign)
    if status:
        q = q.filter(Campaign.status == status.value)
    if search:
        q = q.filter(Campaign.title.ilike(f"%{search}%"))
    items, pagination = paginate(q.order_by(Campaign.created_at.desc(), Campaign.id.desc()), page, limit)
    return {
        "campaigns": [campaign_schemas.Campaign.model_validate(c) for c in items],
        "pagination": pagination,
    }


@router.get("/campaigns/unverified")
def unverified_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.VERIFY_CAMPAIGNS)),
):
    """Campaigns still waiting for a verification decision"""
    q = db.query(Campaign).filter(
        Campaign.is_verified.is_(False),
        Campaign.status == campaign_models.CampaignStatus.PENDING.value,
    ).order_by(Campaign.created_at.asc(), Campaign.id.asc())
    items, pagination = paginate(q, page, limit)
    return {
        "campaigns": [campaign_schemas.Campaign.model_validate(c) for c in items],
        "pagination": pagination,
    }


@router.get("/campaigns/{campaign_id}/verify", response_model=campaign_schemas.CampaignVerification)
def campaign_verification(
    campaign_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.VERIFY_CAMPAIGNS)),
):
    return _get_or_404(db, Campaign, campaign_id, "Campaign")


@router.put("/campaigns/{campaign_id}/verify", response_model=campaign_schemas.CampaignVerification)
def verify_campaign_route(
    campaign_id: int,
    payload: campaign_schemas.CampaignVerify,
    db: Session = Depends(get_db),
    admin: User = Depends(require_capability(Capability.VERIFY_CAMPAIGNS)),
):
    campaign = _get_or_404(db, Campaign, campaign_id, "Campaign")
    try:
        verify_campaign(campaign, admin, payload.is_verified, payload.rejection_reason)
    except InvalidTransition as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(campaign)
    logger.info(f"Admin {admin.id} set campaign {campaign.id} to {campaign.status}")
    return campaign


@router.put("/campaigns/{campaign_id}/status", response_model=campaign_schemas.CampaignVerification)
def update_campaign_status(
    campaign_id: int,
    payload: campaign_schemas.CampaignStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_capability(Capability.VERIFY_CAMPAIGNS)),
):
    campaign = _get_or_404(db, Campaign, campaign_id, "Campaign")
    try:
        set_campaign_status(campaign, payload.status)
    except InvalidTransition as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(campaign)
    logger.info(f"Admin {admin.id} set campaign {campaign.id} to {campaign.status}")
    return campaign


@router.get("/campaigns/{campaign_id}/ledger")
def campaign_ledger(
    campaign_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.VIEW_REPORTS)),
):
    """Raised amount next to the sum of its succeeded donations"""
    campaign = _get_or_404(db, Campaign, campaign_id, "Campaign")
    recorded = ledger.succeeded_total(db, campaign.id)
    return {
        "campaign_id": campaign.id,
        "current_amount": campaign.current_amount,
        "succeeded_total": recorded,
        "consistent": abs((campaign.current_amount or 0) - recorded) < 0.005,
    }


# --- complaints ---

def _list_complaints(db: Session, status: Optional[str], page: int, limit: int):
    q = db.query(Complaint)
    if status and status != "all":
        q = q.filter(Complaint.status == status)
    items, pagination = paginate(q.order_by(Complaint.created_at.desc(), Complaint.id.desc()), page, limit)
    return {
        "complaints": [complaint_schemas.Complaint.model_validate(c) for c in items],
        "pagination": pagination,
    }


@router.get("/complaints")
def list_complaints(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.MANAGE_COMPLAINTS)),
):
    return _list_complaints(db, status, page, limit)


@router.get("/reports")
def list_reports(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.MANAGE_COMPLAINTS)),
):
    return _list_complaints(db, status, page, limit)


@router.get("/complaints/{complaint_id}", response_model=complaint_schemas.Complaint)
def get_complaint(
    complaint_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.MANAGE_COMPLAINTS)),
):
    return _get_or_404(db, Complaint, complaint_id, "Complaint")


@router.put("/complaints/{complaint_id}", response_model=complaint_schemas.Complaint)
def update_complaint(
    complaint_id: int,
    payload: complaint_schemas.ComplaintUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_capability(Capability.MANAGE_COMPLAINTS)),
):
    complaint = _get_or_404(db, Complaint, complaint_id, "Complaint")
    try:
        transition_complaint(complaint, admin, payload.status, payload.admin_notes)
    except InvalidTransition as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(complaint)
    logger.info(f"Admin {admin.id} moved complaint {complaint.id} to {complaint.status}")
    return complaint


# --- donations ---

@router.get("/donor-history")
def donor_history(
    donor: Optional[int] = None,
    campaign: Optional[int] = None,
    date_from: Optional[datetime.datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime.datetime] = Query(None, alias="dateTo"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.VIEW_REPORTS)),
):
    criteria = [Donation.payment_status == SUCCEEDED]
    if donor is not None:
        criteria.append(Donation.donor_id == donor)
    if campaign is not None:
        criteria.append(Donation.campaign_id == campaign)
    if date_from is not None:
        criteria.append(Donation.created_at >= date_from)
    if date_to is not None:
        criteria.append(Donation.created_at <= date_to)

    q = db.query(Donation).filter(*criteria).order_by(Donation.created_at.desc(), Donation.id.desc())
    items, pagination = paginate(q, page, limit)
    return {
        "donations": [donation_schemas.MyDonation.model_validate(d) for d in items],
        "total_amount": SummaryQuery(db, Donation, criteria).total(Donation.amount),
        "pagination": pagination,
    }


# --- comments ---

@router.get("/comments/reported")
def reported_comments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_capability(Capability.MODERATE_COMMENTS)),
):
    q = db.query(Comment).filter(
        Comment.is_reported.is_(True),
        Comment.is_moderated.is_(False),
    ).order_by(Comment.created_at.desc(), Comment.id.desc())
    items, pagination = paginate(q, page, limit)
    return {
        "comments": [comment_schemas.ReportedComment.model_validate(c) for c in items],
        "pagination": pagination,
    }


@router.put("/comments/{comment_id}/moderate", response_model=comment_schemas.ReportedComment)
def moderate_comment_route(
    comment_id: int,
    payload: comment_schemas.CommentModerate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_capability(Capability.MODERATE_COMMENTS)),
):
    comment = _get_or_404(db, Comment, comment_id, "Comment")
    moderate_comment(comment, admin, payload.remove)
    db.commit()
    db.refresh(comment)
    logger.info(f"Admin {admin.id} moderated comment {comment.id} (removed={comment.is_deleted})")
    return comment
