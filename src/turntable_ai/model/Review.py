from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from turntable_ai.model.base import Base, utcnow


class Review(Base):
    """Provider review, deduplicated on (provider, provider_review_id)"""
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("provider", "provider_review_id", name="uq_review_provider_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider = Column(String, nullable=False)
    provider_review_id = Column(String, nullable=False)
    location_name = Column(String, nullable=False)
    rating = Column(Integer, nullable=True)
    text = Column(Text, nullable=True)
    author = Column(String, nullable=True)
    create_time = Column(String, nullable=True)  # ISO, as the provider sent it
    update_time = Column(String, nullable=True)
    raw = Column(JSON, nullable=True)  # full provider payload
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
