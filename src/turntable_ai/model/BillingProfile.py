from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from turntable_ai.model.base import Base, utcnow


class BillingProfile(Base):
    """Subscription state, mutated only by Stripe webhook events"""
    __tablename__ = "billing_profiles"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    plan = Column(String, nullable=False, default="free")
    is_pro = Column(Boolean, nullable=False, default=False)
    stripe_customer_id = Column(String, unique=True, nullable=True, index=True)
    stripe_subscription_id = Column(String, nullable=True)
    stripe_subscription_status = Column(String, nullable=True)
    current_period_end = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
