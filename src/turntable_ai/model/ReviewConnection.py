from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from turntable_ai.model.base import Base, utcnow


class ReviewConnection(Base):
    """One OAuth-authorized review provider account per (user, provider)"""
    __tablename__ = "review_connections"
    __table_args__ = (UniqueConstraint("user_id", "provider", name="uq_review_connection_user_provider"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider = Column(String, nullable=False, default="google")
    email = Column(String, nullable=False)  # where review alerts go
    account_name = Column(String, nullable=True)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    last_seen_by_location = Column(JSON, nullable=False, default=dict)  # location name -> ISO updateTime
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    locations = relationship(
        "ReviewLocation",
        back_populates="connection",
        cascade="all, delete-orphan",
        order_by="ReviewLocation.id",
    )


class ReviewLocation(Base):
    __tablename__ = "review_locations"

    id = Column(Integer, primary_key=True)
    connection_id = Column(Integer, ForeignKey("review_connections.id"), nullable=False, index=True)
    name = Column(String, nullable=False)  # e.g. "locations/123"
    title = Column(String, nullable=False)

    connection = relationship("ReviewConnection", back_populates="locations")
