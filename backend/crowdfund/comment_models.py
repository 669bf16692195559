from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .database import Base
import datetime
import enum


class ReportReason(str, enum.Enum):
    SPAM = "spam"
    INAPPROPRIATE = "inappropriate"
    OFFENSIVE = "offensive"
    HARASSMENT = "harassment"
    OTHER = "other"


class Comment(Base):
    __tablename__ = 'comments'
    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey('campaigns.id'), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    content = Column(Text, nullable=False)
    parent_comment_id = Column(Integer, ForeignKey('comments.id'), nullable=True, index=True)
    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime, nullable=True)
    # soft delete keeps the row so threads stay intact
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime, nullable=True)
    is_reported = Column(Boolean, default=False, nullable=False)
    is_moderated = Column(Boolean, default=False, nullable=False)
    moderated_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    moderated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    author = relationship('User', foreign_keys=[author_id])
    parent = relationship('Comment', remote_side=[id], foreign_keys=[parent_comment_id])
    # visible replies are always read live, deleted ones drop out on their own
    replies = relationship(
        'Comment',
        primaryjoin='and_(Comment.id == remote(Comment.parent_comment_id), '
                    'remote(Comment.is_deleted) == false())',
        order_by='Comment.created_at',
        viewonly=True,
    )
    likes = relationship('CommentLike', back_populates='comment', cascade='all, delete-orphan')
    reports = relationship('CommentReport', back_populates='comment', cascade='all, delete-orphan')

    @property
    def like_count(self) -> int:
        return len(self.likes)

    @property
    def reply_count(self) -> int:
        return len(self.replies)

    @property
    def report_count(self) -> int:
        return len(self.reports)


class CommentLike(Base):
    __tablename__ = 'comment_likes'
    __table_args__ = (UniqueConstraint('comment_id', 'user_id', name='uq_comment_like_user'),)
    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey('comments.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    liked_at = Column(DateTime, default=datetime.datetime.utcnow)

    comment = relationship('Comment', back_populates='likes')


class CommentReport(Base):
    __tablename__ = 'comment_reports'
    __table_args__ = (UniqueConstraint('comment_id', 'user_id', name='uq_comment_report_user'),)
    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey('comments.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    reason = Column(String(50), nullable=False)
    reported_at = Column(DateTime, default=datetime.datetime.utcnow)

    comment = relationship('Comment', back_populates='reports')
