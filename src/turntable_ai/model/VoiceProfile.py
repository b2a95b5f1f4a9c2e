from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Text
from turntable_ai.model.base import Base, utcnow


class VoiceProfile(Base):
    __tablename__ = "voice_profiles"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    samples = Column(JSON, nullable=False, default=list)
    style_guide = Column(Text, nullable=True)  # LLM-generated brand voice guide
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "samples": self.samples or [],
            "style_guide": self.style_guide,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
