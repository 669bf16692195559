from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from . import campaign_models, complaint_models, complaint_schemas, user_models
from .auth import get_current_user
from .database import get_db
from .pagination import paginate

router = APIRouter(prefix="/api/complaints", tags=["Complaints"])


@router.post("", status_code=201)
def submit_complaint(
    payload: complaint_schemas.ComplaintCreate,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
):
    if not db.get(campaign_models.Campaign, payload.campaign_id):
        raise HTTPException(status_code=404, detail="Campaign not found")
    complaint = complaint_models.Complaint(
        user_id=user.id,
        campaign_id=payload.campaign_id,
        subject=payload.subject,
        description=payload.description,
    )
    db.add(complaint)
    db.commit()
    db.refresh(complaint)
    return {
        "message": "Complaint submitted successfully",
        "complaint": complaint_schemas.Complaint.model_validate(complaint),
    }


@router.get("/my-complaints")
def my_complaints(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
):
    Complaint = complaint_models.Complaint
    q = db.query(Complaint).filter(Complaint.user_id == user.id)
    if status and status != "all":
        q = q.filter(Complaint.status == status)
    items, pagination = paginate(q.order_by(Complaint.created_at.desc(), Complaint.id.desc()), page, limit)
    return {
        "complaints": [complaint_schemas.Complaint.model_validate(c) for c in items],
        "pagination": pagination,
    }
