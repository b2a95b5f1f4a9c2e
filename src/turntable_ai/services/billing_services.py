"""Stripe webhook handling and plan mapping"""
import json
import logging
from datetime import datetime, timezone
import stripe
from turntable_ai.config import STRIPE_SECRET_KEY
from turntable_ai.services.database import link_stripe_customer, update_billing_by_customer

_logger = logging.getLogger(__name__)

PRO_STATUSES = ("active", "trialing", "past_due", "unpaid")
WEBHOOK_TOLERANCE_SECONDS = 300

SUBSCRIPTION_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
)


class BillingConfigError(RuntimeError):
    pass


def plan_from_stripe_status(status: str | None) -> str:
    if not status:
        return "free"
    return "pro" if status.lower() in PRO_STATUSES else "free"


def is_pro_from_plan(plan: str) -> bool:
    return plan == "pro"


def verify_webhook(payload: bytes, signature: str, secret: str) -> dict:
    """
    Check the ``stripe-signature`` header and decode the event.

    Raises:
        stripe.SignatureVerificationError: signature or timestamp rejected
        ValueError: payload is not JSON
    """
    text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    stripe.WebhookSignature.verify_header(text, signature, secret, WEBHOOK_TOLERANCE_SECONDS)
    return json.loads(text)


def _object_id(value) -> str | None:
    """Stripe expands some references into objects; collapse them to an id."""
    if value is None or isinstance(value, str):
        return value
    try:
        return value["id"]
    except (KeyError, TypeError):
        return None


def _period_end(subscription) -> int | None:
    try:
        return subscription["current_period_end"]
    except (KeyError, TypeError):
        pass
    # newer API versions carry the period on the subscription items
    try:
        return subscription["items"]["data"][0]["current_period_end"]
    except (KeyError, IndexError, TypeError):
        return None


def _from_unix(seconds: int | None) -> datetime | None:
    if not seconds:
        return None
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc).replace(tzinfo=None)


def retrieve_subscription(subscription_id: str):
    if not STRIPE_SECRET_KEY:
        raise BillingConfigError("Missing STRIPE_SECRET_KEY")
    return stripe.Subscription.retrieve(subscription_id, api_key=STRIPE_SECRET_KEY)


def upsert_profile_by_customer(
    customer_id: str,
    subscription_id: str | None = None,
    subscription_status: str | None = None,
    current_period_end: int | None = None,
) -> bool:
    plan = plan_from_stripe_status(subscription_status)
    updated = update_billing_by_customer(
        customer_id=customer_id,
        plan=plan,
        is_pro=is_pro_from_plan(plan),
        subscription_id=subscription_id,
        subscription_status=subscription_status,
        current_period_end=_from_unix(current_period_end),
    )
    if updated:
        _logger.info(f"[stripe-webhook] Updated profile for customer {customer_id}: plan={plan}")
    else:
        _logger.info(f"[stripe-webhook] No profile matched customer {customer_id} (no-op)")
    return updated


def handle_event(event: dict) -> None:
    """Apply one verified Stripe event to the billing profiles. Unknown types are ignored."""
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}
    _logger.info(f"[stripe-webhook] Received event type={event_type} id={event.get('id')}")

    if event_type in SUBSCRIPTION_EVENTS:
        customer_id = _object_id(obj.get("customer"))
        if customer_id:
            upsert_profile_by_customer(
                customer_id,
                subscription_id=obj.get("id"),
                subscription_status=obj.get("status"),
                current_period_end=_period_end(obj),
            )

    elif event_type == "checkout.session.completed":
        customer_id = _object_id(obj.get("customer"))
        user_ref = str(obj.get("client_reference_id") or "")
        # checkout links the customer to the signed-in user it was started for
        if customer_id and user_ref.isdigit():
            link_stripe_customer(int(user_ref), customer_id)
        if customer_id:
            upsert_profile_by_customer(
                customer_id,
                subscription_id=_object_id(obj.get("subscription")),
                subscription_status="active",
            )

    elif event_type == "invoice.payment_succeeded":
        customer_id = _object_id(obj.get("customer"))
        subscription_id = _object_id(obj.get("subscription"))
        if customer_id and subscription_id:
            subscription = retrieve_subscription(subscription_id)
            upsert_profile_by_customer(
                customer_id,
                subscription_id=subscription["id"],
                subscription_status=subscription["status"],
                current_period_end=_period_end(subscription),
            )
