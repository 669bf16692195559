from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Literal
from . import campaign_models, comment_models, comment_schemas, user_models
from .auth import get_current_user
from .database import get_db
from .moderation import soft_delete_comment
from .pagination import paginate
from .roles import Capability, has_capability
import datetime

router = APIRouter(prefix="/api/comments", tags=["Comments"])

Comment = comment_models.Comment


def get_live_comment(db: Session, comment_id: int) -> comment_models.Comment:
    comment = db.get(Comment, comment_id)
    if not comment or comment.is_deleted:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.get("/campaign/{campaign_id}")
def list_campaign_comments(
    campaign_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: Literal["created_at", "updated_at"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
):
    """Top-level comments of a campaign, each with its visible replies"""
    column = getattr(Comment, sort)
    q = db.query(Comment).filter(
        Comment.campaign_id == campaign_id,
        Comment.parent_comment_id.is_(None),
        Comment.is_deleted.is_(False),
    ).order_by(column.asc() if order == "asc" else column.desc(), Comment.id)
    items, pagination = paginate(q, page, limit)
    return {
        "comments": [comment_schemas.Comment.model_validate(c) for c in items],
        "pagination": pagination,
    }


@router.post("", response_model=comment_schemas.Comment, status_code=201)
def add_comment(
    payload: comment_schemas.CommentCreate,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
):
    campaign = db.get(campaign_models.Campaign, payload.campaign_id)
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")

    if payload.parent_comment_id is not None:
        parent = db.get(Comment, payload.parent_comment_id)
        if not parent or parent.is_deleted or parent.campaign_id != campaign.id:
            raise HTTPException(status_code=404, detail="Parent comment not found")

    comment = Comment(
        campaign_id=campaign.id,
        author_id=user.id,
        content=payload.content,
        parent_comment_id=payload.parent_comment_id,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


@router.put("/{comment_id}", response_model=comment_schemas.Comment)
def update_comment(
    comment_id: int,
    payload: comment_schemas.CommentUpdate,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
):
    comment = get_live_comment(db, comment_id)
    if comment.author_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to edit this comment")
    comment.content = payload.content
    comment.is_edited = True
    comment.edited_at = datetime.datetime.utcnow()
    db.commit()
    db.refresh(comment)
    return comment


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
):
    """Soft delete; replies lists stop showing it straight away"""
    comment = get_live_comment(db, comment_id)
    if comment.author_id != user.id and not has_capability(user, Capability.MODERATE_COMMENTS):
        raise HTTPException(status_code=403, detail="Not authorized to delete this comment")
    soft_delete_comment(comment)
    db.commit()
    return {"message": "Comment deleted successfully"}


@router.post("/{comment_id}/like", response_model=comment_schemas.LikeResult)
def toggle_like(
    comment_id: int,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
):
    comment = get_live_comment(db, comment_id)
    existing = next((like for like in comment.likes if like.user_id == user.id), None)
    if existing:
        comment.likes.remove(existing)
    else:
        comment.likes.append(comment_models.CommentLike(user_id=user.id))
    try:
        db.commit()
    except IntegrityError:
        # double click raced another request; the like is already there
        db.rollback()
        existing = None
    db.refresh(comment)
    is_liked = existing is None
    return {
        "message": "Comment liked" if is_liked else "Comment unliked",
        "is_liked": is_liked,
        "like_count": comment.like_count,
    }


@router.post("/{comment_id}/report")
def report_comment(
    comment_id: int,
    payload: comment_schemas.CommentReportCreate,
    db: Session = Depends(get_db),
    user: user_models.User = Depends(get_current_user),
):
    """Flag a comment for admins; it stays visible until moderated"""
    comment = get_live_comment(db, comment_id)
    if any(report.user_id == user.id for report in comment.reports):
        raise HTTPException(status_code=400, detail="You have already reported this comment")
    comment.reports.append(comment_models.CommentReport(user_id=user.id, reason=payload.reason.value))
    comment.is_reported = True
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="You have already reported this comment")
    return {"message": "Comment reported successfully"}


@router.get("/user/{user_id}")
def list_user_comments(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    q = db.query(Comment).filter(
        Comment.author_id == user_id,
        Comment.is_deleted.is_(False),
    ).order_by(Comment.created_at.desc(), Comment.id.desc())
    items, pagination = paginate(q, page, limit)
    return {
        "comments": [comment_schemas.Reply.model_validate(c) for c in items],
        "pagination": pagination,
    }
