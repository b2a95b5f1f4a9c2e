from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from turntable_ai.model.base import Base, utcnow


class GmailToken(Base):
    """OAuth tokens for the Gmail inbox that receives Yelp review alerts"""
    __tablename__ = "gmail_tokens"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    gmail_address = Column(String, nullable=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
