"""Review reply drafting, analysis, inbox and saved replies"""
import logging
from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse
from turntable_ai.config import MAX_REPLY_LENGTH, MAX_REVIEW_LENGTH
from turntable_ai.model.ReviewReply import REPLY_STATUSES
from turntable_ai.services.database import get_style_guide
from turntable_ai.services.llm_services import (
    VARIANT_FLAVORS,
    LLMConfigError,
    analyze_review,
    generate_review_reply,
)
from turntable_ai.services.review_store import get_review_for_user, list_inbox_reviews, save_review_reply
from turntable_ai.services.utils.http_utils import clean_text, read_json_body
from turntable_ai.services.utils.session_management import get_current_user, get_optional_user

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["reviews"])

INBOX_DEFAULT_LIMIT = 20
INBOX_MAX_LIMIT = 50


def _flag(value, default: bool = True) -> bool:
    return default if value is None else bool(value)


@router.post("/review-reply")
async def review_reply(request: Request):
    """Draft a reply, in the signed-in user's brand voice when one is saved"""
    _logger.info("Review Reply Endpoint Hit")
    body = await read_json_body(request)
    review_text = clean_text(str(body.get("reviewText") or ""), MAX_REVIEW_LENGTH)
    if not review_text:
        raise HTTPException(status_code=400, detail="Please provide the review text.")

    style_guide = None
    user = await get_optional_user(request)
    if user:
        try:
            style_guide = get_style_guide(user.id)
        except Exception as e:
            _logger.warning(f"Could not load style guide for user {user.id}: {str(e)}")

    variant_flavor = str(body.get("variantFlavor") or "base")
    if variant_flavor not in VARIANT_FLAVORS:
        variant_flavor = "base"

    try:
        reply = generate_review_reply(
            review_text,
            rating=body.get("rating"),
            platform=body.get("platform"),
            tone=body.get("tone"),
            business=body.get("business"),
            city=body.get("city"),
            length=body.get("length") or "medium",
            policy_apologize=_flag(body.get("policy_apologize")),
            policy_no_admission=_flag(body.get("policy_no_admission")),
            policy_offer_remedy_if_low=_flag(body.get("policy_offer_remedy_if_low")),
            language=body.get("language") or "English",
            style_guide=style_guide,
            variant_flavor=variant_flavor,
        )
        return JSONResponse(content={"reply": reply})
    except LLMConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        _logger.error(f"Error in review_reply: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate reply")


@router.post("/review-analyze")
async def review_analyze(request: Request):
    _logger.info("Review Analyze Endpoint Hit")
    body = await read_json_body(request)
    review_text = clean_text(body.get("reviewText"), MAX_REVIEW_LENGTH)
    if not review_text:
        raise HTTPException(status_code=400, detail="Missing reviewText")

    try:
        return JSONResponse(content=analyze_review(review_text))
    except LLMConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        _logger.error(f"Error in review_analyze: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to analyze review")


def _inbox_limit(raw: str | None) -> int:
    try:
        limit = int(float(raw))
    except (TypeError, ValueError):
        return INBOX_DEFAULT_LIMIT
    if limit <= 0:
        return INBOX_DEFAULT_LIMIT
    return min(INBOX_MAX_LIMIT, limit)


@router.get("/review-inbox")
async def review_inbox(request: Request):
    """Stored reviews for the signed-in user, newest first"""
    user = await get_current_user(request)
    params = request.query_params
    try:
        items = list_inbox_reviews(
            user.id,
            platform=params.get("platform"),
            query=params.get("q"),
            limit=_inbox_limit(params.get("limit")),
        )
        return JSONResponse(content={"items": items})
    except Exception as e:
        _logger.error(f"Error in review_inbox: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load reviews")


@router.post("/review-save")
async def review_save(request: Request):
    _logger.info("Review Save Endpoint Hit")
    user = await get_current_user(request)
    body = await read_json_body(request)

    review_id = body.get("reviewId")
    reply = clean_text(body.get("reply"), MAX_REPLY_LENGTH)
    if not review_id or not reply:
        raise HTTPException(status_code=400, detail="Missing reviewId or reply")

    status = body.get("status") or "drafted"
    if status not in REPLY_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status. Use one of: {', '.join(REPLY_STATUSES)}")

    tags = body.get("tags") or []
    if not isinstance(tags, list):
        raise HTTPException(status_code=400, detail="tags must be a list")

    try:
        review_id = int(review_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid reviewId")

    if not get_review_for_user(review_id, user.id):
        raise HTTPException(status_code=404, detail="Review not found")

    try:
        save_review_reply(
            review_id,
            reply,
            tags=[str(t) for t in tags],
            note=str(body.get("note") or ""),
            status=status,
        )
        return JSONResponse(content={"ok": True})
    except Exception as e:
        _logger.error(f"Error in review_save: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save reply")
