from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional
from . import campaign_models, campaign_schemas, user_models
from .auth import require_capability
from .database import get_db
from .pagination import paginate
from .roles import Capability

router = APIRouter(prefix="/api/campaigns", tags=["Campaigns"])


@router.post("", response_model=campaign_schemas.Campaign, status_code=201)
def create_campaign(
    payload: campaign_schemas.CampaignCreate,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(require_capability(Capability.CREATE_CAMPAIGN)),
):
    """Create a campaign; it waits in 'pending' until an admin verifies it"""
    campaign = campaign_models.Campaign(
        owner_id=user.id,
        title=payload.title.strip(),
        description=payload.description.strip(),
        category=payload.category,
        goal_amount=payload.goal_amount,
        deadline=payload.deadline,
    )
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign


@router.get("")
def list_campaigns(
    status: Optional[campaign_models.CampaignStatus] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = db.query(campaign_models.Campaign)
    if status:
        q = q.filter(campaign_models.Campaign.status == status.value)
    if category:
        q = q.filter(campaign_models.Campaign.category == category)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            campaign_models.Campaign.title.ilike(like),
            campaign_models.Campaign.description.ilike(like),
        ))
    items, pagination = paginate(q.order_by(campaign_models.Campaign.created_at.desc()), page, limit)
    return {
        "campaigns": [campaign_schemas.Campaign.model_validate(c) for c in items],
        "pagination": pagination,
    }


@router.get("/{campaign_id}", response_model=campaign_schemas.Campaign)
def get_campaign(campaign_id: int, db: Session = Depends(get_db)):
    campaign = db.get(campaign_models.Campaign, campaign_id)
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign
