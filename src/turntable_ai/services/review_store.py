"""Persistence for review provider connections, fetched reviews and saved replies."""
import json
import logging
from dataclasses import dataclass, field
from sqlalchemy import func
from turntable_ai.model.base import utcnow
from turntable_ai.model.ReviewConnection import ReviewConnection, ReviewLocation
from turntable_ai.model.Review import Review
from turntable_ai.model.ReviewReply import ReviewReply
from turntable_ai.services.database import get_db_session

_logger = logging.getLogger(__name__)

GOOGLE = "google"

PLATFORM_LABELS = {"google": "Google", "yelp": "Yelp"}


@dataclass
class Location:
    name: str
    title: str
    id: int | None = None


@dataclass
class GoogleConnection:
    """Detached view of a connection row and its locations."""
    id: int
    user_id: int
    email: str
    access_token: str | None
    refresh_token: str | None
    account_name: str | None = None
    last_seen_by_location: dict = field(default_factory=dict)
    locations: list = field(default_factory=list)


def _to_connection(row: ReviewConnection) -> GoogleConnection:
    return GoogleConnection(
        id=row.id,
        user_id=row.user_id,
        email=row.email,
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        account_name=row.account_name,
        last_seen_by_location=dict(row.last_seen_by_location or {}),
        locations=[Location(id=l.id, name=l.name, title=l.title) for l in row.locations],
    )


def upsert_connection(
    user_id: int,
    email: str,
    tokens: dict,
    locations: list,
    account_name: str = None,
    last_seen_by_location: dict = None,
) -> int:
    """
    Create or update the user's google connection and replace its locations.

    Args:
        tokens (dict): ``access_token`` and optional ``refresh_token``
        locations (list): dicts with ``name`` and ``title``

    Returns:
        int: connection id
    """
    session = get_db_session()
    try:
        conn = session.query(ReviewConnection).filter(
            ReviewConnection.user_id == user_id,
            ReviewConnection.provider == GOOGLE,
        ).first()

        if conn:
            conn.email = email
            conn.account_name = account_name
            conn.access_token = tokens.get("access_token")
            # Google only returns a refresh token on first consent
            if tokens.get("refresh_token"):
                conn.refresh_token = tokens["refresh_token"]
            conn.last_seen_by_location = last_seen_by_location or {}
            conn.updated_at = utcnow()
            conn.locations.clear()
            session.flush()
        else:
            conn = ReviewConnection(
                user_id=user_id,
                provider=GOOGLE,
                email=email,
                account_name=account_name,
                access_token=tokens.get("access_token"),
                refresh_token=tokens.get("refresh_token"),
                last_seen_by_location=last_seen_by_location or {},
            )
            session.add(conn)

        for loc in locations or []:
            conn.locations.append(ReviewLocation(name=loc["name"], title=loc.get("title") or loc["name"]))

        session.commit()
        _logger.info(f"Google connection saved for user {user_id} with {len(locations or [])} locations")
        return conn.id
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_connection_by_user(user_id: int) -> GoogleConnection | None:
    session = get_db_session()
    try:
        row = session.query(ReviewConnection).filter(
            ReviewConnection.user_id == user_id,
            ReviewConnection.provider == GOOGLE,
        ).first()
        return _to_connection(row) if row else None
    finally:
        session.close()


def get_all_google_connections() -> list[GoogleConnection]:
    """Every user's google connection, for the polling sweep."""
    session = get_db_session()
    try:
        rows = session.query(ReviewConnection).filter(
            ReviewConnection.provider == GOOGLE
        ).order_by(ReviewConnection.id).all()
        return [_to_connection(row) for row in rows]
    finally:
        session.close()


def set_last_seen(user_id: int, updates: dict) -> None:
    """Merge new per-location watermarks into the user's connection."""
    session = get_db_session()
    try:
        conn = session.query(ReviewConnection).filter(
            ReviewConnection.user_id == user_id,
            ReviewConnection.provider == GOOGLE,
        ).first()
        if not conn:
            raise ValueError(f"No google connection for user {user_id}")

        # reassign so the JSON column is flagged dirty
        conn.last_seen_by_location = {**(conn.last_seen_by_location or {}), **updates}
        conn.updated_at = utcnow()
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def upsert_reviews(rows: list) -> dict:
    """
    Insert or update reviews keyed on (provider, provider_review_id).

    Re-polling a review that is already stored rewrites the same row.
    """
    if not rows:
        return {"upserted": 0}

    session = get_db_session()
    try:
        for row in rows:
            review = session.query(Review).filter(
                Review.provider == row["provider"],
                Review.provider_review_id == row["provider_review_id"],
            ).first()
            if review is None:
                review = Review(
                    provider=row["provider"],
                    provider_review_id=row["provider_review_id"],
                )
                session.add(review)

            review.user_id = row["user_id"]
            review.location_name = row["location_name"]
            review.rating = row.get("rating")
            review.text = row.get("text")
            review.author = row.get("author")
            review.create_time = row.get("create_time")
            review.update_time = row.get("update_time")
            review.raw = row.get("raw")
            review.updated_at = utcnow()
            # keep duplicates inside one batch on the same row
            session.flush()

        session.commit()
        return {"upserted": len(rows)}
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_inbox_reviews(user_id: int, platform: str = None, query: str = None, limit: int = 20) -> list[dict]:
    """Stored reviews for the inbox view, newest first."""
    session = get_db_session()
    try:
        q = session.query(Review).filter(Review.user_id == user_id)

        if platform and platform.lower() != "all":
            q = q.filter(Review.provider == platform.lower())

        if query and query.strip():
            needle = _escape_like(query.strip().lower())
            q = q.filter(func.lower(Review.text).like(f"%{needle}%", escape="\\"))

        rows = q.order_by(Review.create_time.desc(), Review.id.desc()).limit(limit).all()
        return [
            {
                "id": r.id,
                "platform": PLATFORM_LABELS.get(r.provider, r.provider.title()),
                "reviewerName": r.author,
                "rating": r.rating,
                "reviewText": r.text or "",
                "sourceUrl": (r.raw or {}).get("reviewUrl") if isinstance(r.raw, dict) else None,
                "reviewCreatedAt": r.create_time,
            }
            for r in rows
        ]
    finally:
        session.close()


def get_review_for_user(review_id: int, user_id: int) -> Review | None:
    session = get_db_session()
    try:
        return session.query(Review).filter(Review.id == review_id, Review.user_id == user_id).first()
    finally:
        session.close()


def save_review_reply(review_id: int, reply: str, tags: list, note: str, status: str) -> int:
    """Store a reply; the caller picks the status."""
    session = get_db_session()
    try:
        record = ReviewReply(
            review_id=review_id,
            draft_text=reply,
            final_text=reply,
            tags=json.dumps(tags or []),
            note=note or "",
            status=status,
            posted_at=utcnow() if status == "posted" else None,
        )
        session.add(record)
        session.commit()
        _logger.info(f"Reply saved for review {review_id} with status {status}")
        return record.id
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
