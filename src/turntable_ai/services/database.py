import logging
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from turntable_ai.config import DATABASE_URL
from turntable_ai.model.base import Base, utcnow
# every model is imported so create_all sees its table
from turntable_ai.model.User import User
from turntable_ai.model.UserSession import UserSession
from turntable_ai.model.ReviewConnection import ReviewConnection, ReviewLocation
from turntable_ai.model.Review import Review
from turntable_ai.model.ReviewReply import ReviewReply
from turntable_ai.model.VoiceProfile import VoiceProfile
from turntable_ai.model.BillingProfile import BillingProfile
from turntable_ai.model.GmailToken import GmailToken
from turntable_ai.services.utils.logger_config import mask_email

_logger = logging.getLogger(__name__)


engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base.metadata.create_all(bind=engine)

def get_db_session() -> Session:
    """Get a database session"""

    db = SessionLocal()
    try:
        return db
    finally:
        pass  # Session will be closed by caller


def get_user_by_email(email: str) -> User | None:
    """
    Retrieve user from the database by email.

    Args:
        email (str): The user's email address

    Returns:
        User | None: User object if found, None otherwise
    """
    db = get_db_session()
    try:
        return db.query(User).filter(User.email == email).first()
    except Exception as e:
        _logger.error(f"Error retrieving user by email {mask_email(email)}: {str(e)}", exc_info=True)
        raise
    finally:
        db.close()


def store_user(email: str, name: str = None) -> User:
    """Create or update a user record."""
    session = get_db_session()
    try:
        user = session.query(User).filter(User.email == email).first()
        if user:
            if name is not None:
                user.name = name
        else:
            user = User(email=email, name=name)
            session.add(user)

        session.commit()
        session.refresh(user)
        return user
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Voice profiles
# ---------------------------------------------------------------------------

def get_voice_profile(user_id: int) -> dict | None:
    session = get_db_session()
    try:
        profile = session.query(VoiceProfile).filter(VoiceProfile.user_id == user_id).first()
        return profile.to_dict() if profile else None
    finally:
        session.close()


def get_style_guide(user_id: int) -> str | None:
    """Saved brand voice style guide for a user, if any."""
    profile = get_voice_profile(user_id)
    if profile and profile.get("style_guide"):
        return profile["style_guide"]
    return None


def upsert_voice_profile(user_id: int, samples: list, style_guide: str) -> dict:
    """Replace the user's voice profile wholesale."""
    session = get_db_session()
    try:
        profile = session.query(VoiceProfile).filter(VoiceProfile.user_id == user_id).first()
        if profile:
            profile.samples = samples
            profile.style_guide = style_guide
            profile.updated_at = utcnow()
        else:
            profile = VoiceProfile(user_id=user_id, samples=samples, style_guide=style_guide)
            session.add(profile)
        session.commit()
        session.refresh(profile)
        _logger.info(f"Voice profile saved for user {user_id}")
        return profile.to_dict()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def delete_voice_profile(user_id: int) -> bool:
    session = get_db_session()
    try:
        deleted = session.query(VoiceProfile).filter(VoiceProfile.user_id == user_id).delete()
        session.commit()
        return deleted > 0
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Billing profiles
# ---------------------------------------------------------------------------

def get_billing_profile(user_id: int) -> BillingProfile | None:
    session = get_db_session()
    try:
        return session.query(BillingProfile).filter(BillingProfile.user_id == user_id).first()
    finally:
        session.close()


def update_billing_by_customer(
    customer_id: str,
    plan: str,
    is_pro: bool,
    subscription_id: str | None,
    subscription_status: str | None,
    current_period_end: datetime | None,
) -> bool:
    """
    Update the billing profile owning a Stripe customer id.

    Returns:
        bool: False when no profile carries that customer id (no-op)
    """
    session = get_db_session()
    try:
        profile = session.query(BillingProfile).filter(
            BillingProfile.stripe_customer_id == customer_id
        ).first()
        if not profile:
            return False

        profile.plan = plan
        profile.is_pro = is_pro
        profile.stripe_subscription_id = subscription_id
        profile.stripe_subscription_status = subscription_status
        profile.current_period_end = current_period_end
        profile.updated_at = utcnow()
        session.commit()
        return True
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def link_stripe_customer(user_id: int, customer_id: str) -> BillingProfile:
    """Attach a Stripe customer to a user, creating a free profile if needed."""
    session = get_db_session()
    try:
        profile = session.query(BillingProfile).filter(BillingProfile.user_id == user_id).first()
        if profile:
            profile.stripe_customer_id = customer_id
        else:
            profile = BillingProfile(user_id=user_id, stripe_customer_id=customer_id)
            session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Gmail tokens
# ---------------------------------------------------------------------------

def upsert_gmail_token(
    user_id: int,
    access_token: str,
    refresh_token: str,
    expires_at: datetime | None,
    gmail_address: str | None = None,
) -> None:
    session = get_db_session()
    try:
        token = session.query(GmailToken).filter(GmailToken.user_id == user_id).first()
        if token:
            token.access_token = access_token
            token.refresh_token = refresh_token
            token.expires_at = expires_at
            if gmail_address:
                token.gmail_address = gmail_address
        else:
            session.add(GmailToken(
                user_id=user_id,
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
                gmail_address=gmail_address,
            ))
        session.commit()
        _logger.info(f"Gmail tokens stored for user {user_id}")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_gmail_token(user_id: int) -> GmailToken | None:
    session = get_db_session()
    try:
        return session.query(GmailToken).filter(GmailToken.user_id == user_id).first()
    finally:
        session.close()
