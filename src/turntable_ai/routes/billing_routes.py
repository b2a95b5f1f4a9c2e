"""Stripe webhook and billing profile routes"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from turntable_ai.config import STRIPE_WEBHOOK_SECRET
from turntable_ai.services.billing_services import handle_event, verify_webhook
from turntable_ai.services.database import get_billing_profile
from turntable_ai.services.utils.session_management import get_current_user

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["billing"])


@router.get("/stripe/webhook")
async def stripe_webhook_health():
    return JSONResponse(content={
        "ok": True,
        "route": "/api/stripe/webhook",
        "message": "GET works; POST with a signed Stripe event.",
        "time": datetime.now(timezone.utc).isoformat(),
    })


@router.post("/stripe/webhook")
async def stripe_webhook(request: Request):
    """Verify the Stripe signature, then apply the event to billing profiles"""
    if not STRIPE_WEBHOOK_SECRET:
        return PlainTextResponse("Missing STRIPE_WEBHOOK_SECRET", status_code=500)

    signature = request.headers.get("stripe-signature")
    if not signature:
        return PlainTextResponse("Missing stripe-signature header", status_code=400)

    payload = await request.body()
    try:
        event = verify_webhook(payload, signature, STRIPE_WEBHOOK_SECRET)
    except Exception as e:
        _logger.warning(f"[stripe-webhook] Rejected event: {str(e)}")
        return PlainTextResponse(f"Webhook Error: {str(e) or 'Unknown error'}", status_code=400)

    try:
        handle_event(event)
    except Exception as e:
        _logger.error(f"[stripe-webhook] Handler failed: {str(e)}", exc_info=True)
        return PlainTextResponse(f"Webhook handler failed: {str(e) or 'Unknown'}", status_code=500)

    return PlainTextResponse("ok")


@router.get("/billing/profile")
async def billing_profile(request: Request):
    user = await get_current_user(request)
    profile = get_billing_profile(user.id)
    if not profile:
        return JSONResponse(content={"plan": "free", "isPro": False, "subscriptionStatus": None, "currentPeriodEnd": None})
    return JSONResponse(content={
        "plan": profile.plan,
        "isPro": bool(profile.is_pro),
        "subscriptionStatus": profile.stripe_subscription_status,
        "currentPeriodEnd": profile.current_period_end.isoformat() if profile.current_period_end else None,
    })
