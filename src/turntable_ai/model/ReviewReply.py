from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from turntable_ai.model.base import Base, utcnow

REPLY_STATUSES = ("drafted", "approved", "posted", "rejected")


class ReviewReply(Base):
    """Saved reply for a stored review"""
    __tablename__ = "review_replies"

    id = Column(Integer, primary_key=True)
    review_id = Column(Integer, ForeignKey("reviews.id"), nullable=False, index=True)
    draft_text = Column(Text, nullable=False)
    final_text = Column(Text, nullable=True)
    tags = Column(Text, nullable=False, default="[]")  # JSON-encoded list
    note = Column(Text, nullable=False, default="")
    status = Column(String, nullable=False, index=True)  # drafted, approved, posted, rejected
    posted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
