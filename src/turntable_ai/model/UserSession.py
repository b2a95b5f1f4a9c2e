from sqlalchemy import Column, DateTime, Integer, String
from turntable_ai.model.base import Base, utcnow


class UserSession(Base):
    """Browser session cookie; one live token per signed-in email"""
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True)
    user_email = Column(String, index=True, nullable=False)
    session_token = Column(String, unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)  # naive UTC
    created_at = Column(DateTime, default=utcnow, nullable=False)
