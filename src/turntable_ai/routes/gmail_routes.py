"""Gmail connection for the inbox that receives Yelp review alerts"""
import logging
from urllib.parse import quote
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse
from turntable_ai.config import SITE_URL
from turntable_ai.services.database import get_gmail_token, upsert_gmail_token
from turntable_ai.services.gmail_services import (
    exchange_gmail_code,
    get_gmail_address,
    gmail_auth_url,
    gmail_env_configured,
)
from turntable_ai.services.utils.http_utils import encode_state
from turntable_ai.services.utils.session_management import get_current_user, get_optional_user

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/gmail/yelp", tags=["gmail"])


def _error(message: str, status_code: int = 500, **extra) -> JSONResponse:
    _logger.error(f"[gmail-yelp-callback] {message} {extra or ''}".strip())
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message, **extra})


@router.get("/start")
async def gmail_yelp_start(request: Request):
    user = await get_optional_user(request)
    if not user:
        current = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        return RedirectResponse(url=f"/login?redirect={quote(current, safe='')}", status_code=302)

    if not gmail_env_configured():
        return _error("gmail_yelp_start_failed", 500)

    return RedirectResponse(url=gmail_auth_url(encode_state({"u": user.id})), status_code=302)


@router.get("/callback")
async def gmail_yelp_callback(request: Request):
    params = request.query_params
    if params.get("error"):
        return _error("google_returned_error", 400, provider_error=params.get("error"))

    code = params.get("code")
    if not code:
        return _error("missing_code_param", 400)

    user = await get_optional_user(request)
    if not user:
        return _error("not_authenticated", 401)

    if not gmail_env_configured():
        return _error("missing_gmail_yelp_env_vars", 500)

    try:
        credentials = exchange_gmail_code(code)
    except Exception as e:
        return _error("token_exchange_failed", 500, details=str(e))

    if not credentials.token or not credentials.refresh_token:
        return _error("missing_tokens_in_response", 500)

    try:
        upsert_gmail_token(
            user_id=user.id,
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expires_at=credentials.expiry,
            gmail_address=get_gmail_address(credentials),
        )
    except Exception as e:
        return _error("failed_to_store_tokens", 500, details=str(e))

    return RedirectResponse(url=f"{SITE_URL}/integrations?gmail_yelp=connected", status_code=302)


@router.get("/status")
async def gmail_yelp_status(request: Request):
    """Whether the signed-in user has a connected alert inbox"""
    user = await get_current_user(request)
    token = get_gmail_token(user.id)
    return JSONResponse(content={
        "connected": token is not None,
        "gmailAddress": token.gmail_address if token else None,
    })
