import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session
from typing import Literal
from . import campaign_models, user_models
from .auth import get_current_user, require_capability
from .config import Settings
from .database import get_db
from .dependencies import get_mailer, get_settings
from .mailer import MailError
from .notifications import CampaignSnapshot, send_campaign_update, send_milestone, unique_donor_recipients
from .roles import Capability

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


class CampaignUpdateIn(BaseModel):
    campaign_id: int = Field(..., alias='campaignId')
    update_message: str = Field(..., alias='updateMessage', min_length=1, max_length=5000)

    model_config = ConfigDict(populate_by_name=True)


class MilestoneIn(BaseModel):
    campaign_id: int = Field(..., alias='campaignId')
    milestone: Literal[25, 50, 75, 100]

    model_config = ConfigDict(populate_by_name=True)


def snapshot_of(campaign, settings: Settings) -> CampaignSnapshot:
    return CampaignSnapshot(
        id=campaign.id,
        title=campaign.title,
        current_amount=campaign.current_amount or 0,
        goal_amount=campaign.goal_amount,
        url=settings.campaign_url(campaign.id),
    )


def load_audience(db: Session, campaign_id: int, settings: Settings, owner_id: int = None):
    """Campaign snapshot plus its donor recipients."""
    campaign = db.get(campaign_models.Campaign, campaign_id)
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    if owner_id is not None and campaign.owner_id != owner_id:
        raise HTTPException(status_code=403, detail="Not authorized to send updates for this campaign")
    return snapshot_of(campaign, settings), unique_donor_recipients(db, campaign.id)


@router.post("/campaign-update")
async def campaign_update(
    payload: CampaignUpdateIn,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
    mailer=Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    """Email an owner-written update to every donor of the campaign"""
    snapshot, recipients = await run_in_threadpool(load_audience, db, payload.campaign_id, settings, user.id)
    result = await send_campaign_update(mailer, snapshot, payload.update_message.strip(), recipients)
    return {
        "message": "Campaign update sent successfully",
        "sent": result.sent,
        "failed": result.failed,
        "skipped": result.skipped,
    }


@router.post("/milestone")
async def milestone(
    payload: MilestoneIn,
    db: Session = Depends(get_db),
    _admin: user_models.User = Depends(require_capability(Capability.VIEW_REPORTS)),
    mailer=Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    """Re-send a milestone announcement by hand"""
    snapshot, recipients = await run_in_threadpool(load_audience, db, payload.campaign_id, settings)
    result = await send_milestone(mailer, snapshot, payload.milestone, recipients)
    return {
        "message": f"Milestone notification ({payload.milestone}%) sent successfully",
        "sent": result.sent,
        "failed": result.failed,
        "skipped": result.skipped,
    }


@router.get("/test-email")
async def check_email_config(
    _user: user_models.User = Depends(get_current_user),
    mailer=Depends(get_mailer),
):
    """Check that the mail API accepts the configured key"""
    try:
        await mailer.check()
    except MailError as e:
        logger.error(f"Email configuration check failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"message": "Email configuration error", "error": str(e), "status": "error"},
        )
    return {"message": "Email configuration is working properly", "status": "success"}
