"""
Admin-driven state changes for users, campaigns, comments and
complaints. Nothing here transitions on its own; every function is
called from an admin route with the acting admin.

Functions mutate the ORM objects they are given; the caller commits.
"""
import datetime
from typing import Optional

from .campaign_models import CampaignStatus
from .complaint_models import ComplaintStatus


class InvalidTransition(ValueError):
    pass


COMPLAINT_TRANSITIONS = {
    ComplaintStatus.PENDING: {ComplaintStatus.IN_REVIEW, ComplaintStatus.RESOLVED, ComplaintStatus.DISMISSED},
    ComplaintStatus.IN_REVIEW: {ComplaintStatus.PENDING, ComplaintStatus.RESOLVED, ComplaintStatus.DISMISSED},
    # reopening goes back through review
    ComplaintStatus.RESOLVED: {ComplaintStatus.IN_REVIEW},
    ComplaintStatus.DISMISSED: {ComplaintStatus.IN_REVIEW},
}

CLOSED_COMPLAINT_STATUSES = (ComplaintStatus.RESOLVED, ComplaintStatus.DISMISSED)

ADMIN_SETTABLE_CAMPAIGN_STATUSES = (
    CampaignStatus.ACTIVE,
    CampaignStatus.COMPLETED,
    CampaignStatus.CANCELLED,
    CampaignStatus.EXPIRED,
)


def verify_user(user, admin, approved: bool, rejection_reason: Optional[str] = None, now=None):
    now = now or datetime.datetime.utcnow()
    if approved:
        user.is_verified = True
        user.verified_by_id = admin.id
        user.verified_at = now
        user.rejection_reason = None
    else:
        user.is_verified = False
        user.verified_by_id = None
        user.verified_at = None
        if rejection_reason:
            user.rejection_reason = rejection_reason
    return user


def verify_campaign(campaign, admin, approved: bool, rejection_reason: Optional[str] = None, now=None):
    """Approve or reject a campaign that is still waiting for review."""
    if campaign.status != CampaignStatus.PENDING.value or campaign.is_verified:
        raise InvalidTransition(
            f"Only pending, unverified campaigns can be reviewed (status is '{campaign.status}')"
        )
    now = now or datetime.datetime.utcnow()
    campaign.is_verified = approved
    campaign.verified_by_id = admin.id
    campaign.verified_at = now
    if approved:
        campaign.status = CampaignStatus.ACTIVE.value
        campaign.rejection_reason = None
    else:
        campaign.status = CampaignStatus.REJECTED.value
        if rejection_reason:
            campaign.rejection_reason = rejection_reason
    return campaign


def set_campaign_status(campaign, status: CampaignStatus):
    status = CampaignStatus(status)
    if status not in ADMIN_SETTABLE_CAMPAIGN_STATUSES:
        raise InvalidTransition(f"Campaign status cannot be set to '{status.value}'")
    campaign.status = status.value
    return campaign


def transition_complaint(complaint, admin, status: ComplaintStatus, admin_notes: Optional[str] = None):
    current = ComplaintStatus(complaint.status)
    target = ComplaintStatus(status)
    if target != current and target not in COMPLAINT_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Complaint cannot move from '{current.value}' to '{target.value}'"
        )
    complaint.status = target.value
    # None leaves the notes alone, an empty string clears them
    if admin_notes is not None:
        complaint.admin_notes = admin_notes.strip() or None
    if target in CLOSED_COMPLAINT_STATUSES:
        complaint.resolved_by_id = admin.id
    elif target != current:
        complaint.resolved_by_id = None
    return complaint


def moderate_comment(comment, admin, remove: bool, now=None):
    now = now or datetime.datetime.utcnow()
    comment.is_moderated = True
    comment.moderated_by_id = admin.id
    comment.moderated_at = now
    if remove and not comment.is_deleted:
        soft_delete_comment(comment, now)
    return comment


def soft_delete_comment(comment, now=None):
    comment.is_deleted = True
    comment.deleted_at = now or datetime.datetime.utcnow()
    return comment
