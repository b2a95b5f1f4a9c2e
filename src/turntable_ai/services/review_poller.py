"""
Sweep every stored Google connection for new reviews.

For each location, reviews updated after the stored watermark get an AI
draft and one alert email, then are saved in a single batch and the
watermark moves to the newest ``updateTime`` seen. A failing location is
logged and skipped; the rest of the sweep carries on.
"""
import logging
import re
import time
from datetime import datetime, timezone
from typing import Callable
from turntable_ai.config import POLL_EMAIL_DELAY_SECONDS
from turntable_ai.services.email_services import send_review_email
from turntable_ai.services.google_services import list_reviews, refresh_access_token, star_to_number
from turntable_ai.services.llm_services import generate_review_reply
from turntable_ai.services.review_store import (
    GOOGLE,
    GoogleConnection,
    get_all_google_connections,
    set_last_seen,
    upsert_reviews,
)
from turntable_ai.services.utils.logger_config import mask_email

_logger = logging.getLogger(__name__)

NO_CONNECTIONS_MESSAGE = "No Google connections configured."

_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str | None) -> datetime | None:
    """RFC 3339 timestamp (``Z`` suffix, nanosecond fractions) as an aware datetime."""
    if not value:
        return None
    # fromisoformat takes at most microseconds
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value.strip(), count=1)
    text = text.replace("Z", "+00:00").replace("z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def fresh_reviews(reviews: list, watermark: str | None) -> list:
    """Reviews updated strictly after ``watermark``, newest first."""
    cutoff = parse_timestamp(watermark)
    fresh = []
    for review in reviews:
        updated = parse_timestamp(review.get("updateTime"))
        if updated is None:
            continue
        if cutoff is None or updated > cutoff:
            fresh.append((updated, review))
    fresh.sort(key=lambda pair: pair[0], reverse=True)
    return [review for _, review in fresh]


def newest_watermark(reviews: list, previous: str | None) -> str | None:
    """Largest ``updateTime`` among ``reviews``, else ``previous``."""
    best, best_raw = parse_timestamp(previous), previous
    for review in reviews:
        raw = review.get("updateTime")
        parsed = parse_timestamp(raw)
        if parsed is not None and (best is None or parsed > best):
            best, best_raw = parsed, raw
    return best_raw


def _review_id(review: dict) -> str | None:
    return review.get("name") or review.get("reviewId")


def _review_row(user_id: int, location_name: str, review: dict) -> dict:
    reviewer = review.get("reviewer") or {}
    return {
        "user_id": user_id,
        "provider": GOOGLE,
        "provider_review_id": _review_id(review),
        "location_name": location_name,
        "rating": star_to_number(review.get("starRating")),
        "text": review.get("comment") or "",
        "author": reviewer.get("displayName"),
        "create_time": review.get("createTime"),
        "update_time": review.get("updateTime"),
        "raw": review,
    }


def _draft_reply(review: dict, location_title: str) -> str | None:
    try:
        return generate_review_reply(
            review.get("comment") or "",
            rating=star_to_number(review.get("starRating")),
            platform="Google",
            tone="Friendly",
            business=location_title,
            length="medium",
            policy_apologize=True,
            policy_no_admission=True,
            policy_offer_remedy_if_low=True,
            language="English",
        )
    except Exception as e:
        _logger.warning(f"AI draft failed for review {_review_id(review)}: {str(e)}")
        return None


def _fresh_access_token(conn: GoogleConnection) -> str:
    if not conn.refresh_token:
        return conn.access_token
    try:
        return refresh_access_token(conn.refresh_token)["access_token"] or conn.access_token
    except Exception as e:
        _logger.warning(f"Token refresh failed for user {conn.user_id}, using stored token: {str(e)}")
        return conn.access_token


def poll_connection(conn: GoogleConnection, sleep: Callable[[float], None] = time.sleep) -> tuple[int, int]:
    """
    Process every location of one connection.

    Returns:
        tuple: (emails sent, reviews saved)
    """
    if not conn.access_token or not conn.locations:
        _logger.warning(f"Skipping connection {conn.id}: missing access token or locations")
        return 0, 0

    access_token = _fresh_access_token(conn)
    sent = 0
    saved = 0
    watermarks = {}

    for location in conn.locations:
        try:
            previous = conn.last_seen_by_location.get(location.name)
            reviews = list_reviews(access_token, location.name)
            fresh = fresh_reviews(reviews, previous)
            unidentified = [r for r in fresh if not _review_id(r)]
            if unidentified:
                _logger.warning(f"Skipping {len(unidentified)} reviews without an id at {location.name}")
                fresh = [r for r in fresh if _review_id(r)]

            for review in fresh:
                ai_reply = _draft_reply(review, location.title)
                send_review_email(
                    to=conn.email,
                    platform="Google",
                    location_name=location.title,
                    review_text=review.get("comment") or "",
                    rating=star_to_number(review.get("starRating")),
                    reviewer=(review.get("reviewer") or {}).get("displayName"),
                    created_time=review.get("createTime"),
                    ai_reply=ai_reply,
                )
                sent += 1
                sleep(POLL_EMAIL_DELAY_SECONDS)

            if fresh:
                result = upsert_reviews([_review_row(conn.user_id, location.name, r) for r in fresh])
                saved += result["upserted"]

            watermark = newest_watermark(fresh, previous)
            if watermark:
                watermarks[location.name] = watermark
        except Exception as e:
            _logger.error(f"Polling failed for location {location.name}: {str(e)}", exc_info=True)

    if watermarks:
        set_last_seen(conn.user_id, watermarks)

    _logger.info(f"Polled {mask_email(conn.email)}: sent={sent} saved={saved}")
    return sent, saved


def poll_all_connections(sleep: Callable[[float], None] = time.sleep) -> dict:
    connections = get_all_google_connections()
    if not connections:
        return {"ok": True, "message": NO_CONNECTIONS_MESSAGE, "sent": 0, "saved": 0}

    sent = 0
    saved = 0
    for conn in connections:
        conn_sent, conn_saved = poll_connection(conn, sleep=sleep)
        sent += conn_sent
        saved += conn_saved

    return {"ok": True, "sent": sent, "saved": saved}
