import logging
import os
from datetime import timedelta
from sqlalchemy.orm import Session
from fastapi import HTTPException, Request
from turntable_ai.config import SESSION_TTL_HOURS
from turntable_ai.model.base import utcnow
from turntable_ai.model.User import User
from turntable_ai.model.UserSession import UserSession
from turntable_ai.services.database import get_db_session, get_user_by_email
from turntable_ai.services.utils.logger_config import mask_email

_logger = logging.getLogger(__name__)

SESSION_COOKIE = "session_token"


async def validate_session(
    request: Request = None,
    session_token: str = None
) -> str:
    """Resolve the session cookie (or an explicit token) to the signed-in email."""
    token = session_token

    if request and not token:
        token = request.cookies.get(SESSION_COOKIE)

    if not token:
        raise HTTPException(status_code=401, detail="Not signed in")

    db: Session = get_db_session()
    try:
        session = db.query(UserSession).filter_by(session_token=token).first()

        if not session:
            raise HTTPException(status_code=401, detail="Invalid session")

        if utcnow() > session.expires_at:
            db.delete(session)
            db.commit()
            raise HTTPException(status_code=401, detail="Session expired. Please log in again.")

        return session.user_email
    finally:
        db.close()


async def get_current_user(request: Request) -> User:
    """Signed-in user or 401."""
    email = await validate_session(request)
    user = get_user_by_email(email)
    if not user:
        raise HTTPException(status_code=401, detail="Not signed in")
    return user


async def get_optional_user(request: Request) -> User | None:
    """Signed-in user, or None for anonymous callers."""
    try:
        return await get_current_user(request)
    except HTTPException:
        return None


def create_user_session(user_email: str) -> str:
    _logger.info(f"Creating user session for {mask_email(user_email)}")
    db = get_db_session()
    try:
        session_token = os.urandom(32).hex()
        expiration_time = utcnow() + timedelta(hours=SESSION_TTL_HOURS)

        existing_session = db.query(UserSession).filter_by(user_email=user_email).first()

        if existing_session:
            existing_session.session_token = session_token
            existing_session.expires_at = expiration_time
        else:
            db.add(UserSession(
                user_email=user_email,
                session_token=session_token,
                expires_at=expiration_time
            ))
        db.commit()
        return session_token
    except Exception as e:
        db.rollback()
        _logger.error(f"Error creating user session for {mask_email(user_email)}: {str(e)}", exc_info=True)
        raise Exception("Error creating user session")
    finally:
        db.close()


def end_user_session(session_token: str) -> None:
    db = get_db_session()
    try:
        db.query(UserSession).filter_by(session_token=session_token).delete()
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
