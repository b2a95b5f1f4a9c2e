from sqlalchemy import Column, DateTime, Integer, String
from turntable_ai.model.base import Base, utcnow


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
