"""Google Business Profile connection and review polling routes"""
import logging
from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from turntable_ai.config import CRON_SECRET, SITE_URL
from turntable_ai.services.google_services import exchange_code, google_auth_url, list_accounts, list_locations
from turntable_ai.services.review_poller import poll_all_connections
from turntable_ai.services.review_store import get_connection_by_user, upsert_connection
from turntable_ai.services.utils.http_utils import decode_state, encode_state, secret_matches
from turntable_ai.services.utils.logger_config import mask_email
from turntable_ai.services.utils.session_management import get_current_user, get_optional_user

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/google", tags=["google"])

INTEGRATIONS_PAGE = f"{SITE_URL}/integrations"


def _integrations_redirect(query: str) -> RedirectResponse:
    return RedirectResponse(url=f"{INTEGRATIONS_PAGE}?{query}", status_code=302)


@router.get("/auth/start")
async def google_auth_start(request: Request):
    """Send the signed-in owner to Google consent; alerts go to ?email= or their login email"""
    user = await get_current_user(request)
    email = request.query_params.get("email") or user.email
    state = encode_state({"u": user.id, "e": email})
    try:
        return RedirectResponse(url=google_auth_url(state), status_code=302)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/auth/callback")
async def google_auth_callback(request: Request):
    code = request.query_params.get("code")
    state = request.query_params.get("state")
    if not code:
        return _integrations_redirect("error=missing_code")

    try:
        payload = decode_state(state or "")
        user_id = int(payload["u"])
        email = str(payload["e"])
    except (ValueError, KeyError, TypeError) as e:
        _logger.warning(f"Rejected Google callback state: {str(e)}")
        return _integrations_redirect("error=invalid_state")

    user = await get_optional_user(request)
    if not user or user.id != user_id:
        _logger.warning(f"Google callback state user {user_id} does not match the session user")
        return _integrations_redirect("error=invalid_state")

    try:
        tokens = exchange_code(code)
        accounts = list_accounts(tokens["access_token"])
        account = accounts[0] if accounts else None

        locations = []
        if account and account.get("name"):
            locations = [
                {"name": loc["name"], "title": loc.get("title") or loc["name"]}
                for loc in list_locations(tokens["access_token"], account["name"])
                if loc.get("name")
            ]

        existing = get_connection_by_user(user_id)
        upsert_connection(
            user_id=user_id,
            email=email,
            tokens=tokens,
            locations=locations,
            account_name=account.get("name") if account else None,
            last_seen_by_location=existing.last_seen_by_location if existing else None,
        )
        _logger.info(f"Google connected for {mask_email(email)} with {len(locations)} locations")
        return _integrations_redirect("connected=google")
    except Exception as e:
        _logger.error(f"Google OAuth callback failed: {str(e)}", exc_info=True)
        return _integrations_redirect("error=oauth_failed")


def _check_cron_secret(request: Request) -> None:
    if not CRON_SECRET:
        return
    if not secret_matches(request.headers.get("x-cron-secret"), CRON_SECRET):
        raise HTTPException(status_code=401, detail="unauthorized")


@router.api_route("/poll", methods=["GET", "POST"])
async def google_poll(request: Request):
    """Run one review sweep across all connections"""
    _logger.info("Google Poll Endpoint Hit")
    _check_cron_secret(request)
    try:
        result = await run_in_threadpool(poll_all_connections)
        return JSONResponse(content=result)
    except Exception as e:
        _logger.error(f"Review poll failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "poll_failed")
