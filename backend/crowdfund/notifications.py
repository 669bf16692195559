"""
Donor notifications: donation receipts, milestone announcements and
owner-written campaign updates. Everything here is best-effort; callers
never see an exception from a failed email.
"""
import logging
from dataclasses import dataclass
from html import escape
from typing import Iterable, List

from sqlalchemy.orm import Session

from .donation_models import Donation, PaymentStatus
from .mailer import BulkResult, EmailMessage, Mailer
from .user_models import User

logger = logging.getLogger(__name__)


@dataclass
class Recipient:
    email: str
    name: str


@dataclass
class CampaignSnapshot:
    """What the templates need, detached from the request's session."""
    id: int
    title: str
    current_amount: float
    goal_amount: float
    url: str


def unique_donor_recipients(db: Session, campaign_id: int) -> List[Recipient]:
    """One recipient per donor address, newest donation first."""
    rows = (
        db.query(User.email, User.name)
        .join(Donation, Donation.donor_id == User.id)
        .filter(
            Donation.campaign_id == campaign_id,
            Donation.payment_status == PaymentStatus.SUCCEEDED.value,
        )
        .order_by(Donation.created_at.desc())
        .all()
    )
    seen = {}
    for email, name in rows:
        key = (email or "").strip().lower()
        if key and key not in seen:
            seen[key] = Recipient(email=email, name=name or "Supporter")
    return list(seen.values())


def donation_confirmation_email(to: Recipient, campaign: CampaignSnapshot, amount: float) -> EmailMessage:
    return EmailMessage(
        to=to.email,
        subject=f"Thank you for supporting {campaign.title}!",
        html=(
            f"<p>Hi {escape(to.name)},</p>"
            f"<p>Thank you for your donation of <strong>{amount:,.2f}</strong> to "
            f"<strong>{escape(campaign.title)}</strong>.</p>"
            f"<p><a href=\"{campaign.url}\">View campaign</a></p>"
        ),
    )


def milestone_email(to: Recipient, campaign: CampaignSnapshot, milestone: int) -> EmailMessage:
    return EmailMessage(
        to=to.email,
        subject=f"{campaign.title} reached {milestone}% funding!",
        html=(
            f"<p>Hi {escape(to.name)},</p>"
            f"<p><strong>{escape(campaign.title)}</strong> has reached {milestone}% of its goal: "
            f"{campaign.current_amount:,.2f} of {campaign.goal_amount:,.2f} raised.</p>"
            f"<p><a href=\"{campaign.url}\">View campaign</a></p>"
        ),
    )


def campaign_update_email(to: Recipient, campaign: CampaignSnapshot, update_message: str) -> EmailMessage:
    return EmailMessage(
        to=to.email,
        subject=f"Update on {campaign.title} - Campaign You Supported",
        html=(
            f"<p>Hi {escape(to.name)},</p>"
            f"<p>The campaign <strong>{escape(campaign.title)}</strong> that you supported has an update:</p>"
            f"<blockquote>{escape(update_message)}</blockquote>"
            f"<p>Raised so far: {campaign.current_amount:,.2f} of {campaign.goal_amount:,.2f}.</p>"
            f"<p><a href=\"{campaign.url}\">View campaign</a></p>"
        ),
    )


async def send_milestone(mailer: Mailer, campaign: CampaignSnapshot, milestone: int,
                         recipients: Iterable[Recipient]) -> BulkResult:
    recipients = list(recipients)
    if not recipients:
        logger.info(f"No donors to notify for {milestone}% milestone of campaign {campaign.id}")
        return BulkResult()
    result = await mailer.send_bulk(milestone_email(r, campaign, milestone) for r in recipients)
    logger.info(
        f"Milestone {milestone}% emails for campaign {campaign.id}: "
        f"{result.sent} sent, {result.failed} failed, {result.skipped} skipped"
    )
    return result


async def send_campaign_update(mailer: Mailer, campaign: CampaignSnapshot, update_message: str,
                               recipients: Iterable[Recipient]) -> BulkResult:
    result = await mailer.send_bulk(campaign_update_email(r, campaign, update_message) for r in recipients)
    logger.info(
        f"Campaign update emails for campaign {campaign.id}: "
        f"{result.sent} sent, {result.failed} failed, {result.skipped} skipped"
    )
    return result


async def after_donation(mailer: Mailer, donor: Recipient, campaign: CampaignSnapshot, amount: float,
                         milestones: List[int], recipients: List[Recipient]) -> None:
    """Receipt plus milestone emails for a freshly confirmed donation."""
    try:
        await mailer.send(donation_confirmation_email(donor, campaign, amount))
    except Exception:
        logger.exception(f"Error sending donation confirmation email to {donor.email}")

    for milestone in milestones:
        try:
            await send_milestone(mailer, campaign, milestone, recipients)
        except Exception:
            logger.exception(f"Error sending {milestone}% milestone notification for campaign {campaign.id}")
