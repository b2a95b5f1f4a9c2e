"""Authentication and OAuth routes"""
import logging
import secrets
from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from googleapiclient.discovery import build
from turntable_ai.config import (
    GOOGLE_LOGIN_CLIENT_ID,
    GOOGLE_LOGIN_CLIENT_SECRET,
    GOOGLE_LOGIN_REDIRECT,
    LOGIN_SCOPES,
    SESSION_TTL_HOURS,
    SITE_URL,
)
from turntable_ai.services.database import store_user
from turntable_ai.services.google_services import build_flow
from turntable_ai.services.utils.http_utils import secret_matches
from turntable_ai.services.utils.logger_config import mask_email
from turntable_ai.services.utils.session_management import (
    SESSION_COOKIE,
    create_user_session,
    end_user_session,
    get_current_user,
)

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["authentication"])

STATE_COOKIE = "oauth_state"


def login_flow():
    return build_flow(GOOGLE_LOGIN_CLIENT_ID, GOOGLE_LOGIN_CLIENT_SECRET, GOOGLE_LOGIN_REDIRECT, LOGIN_SCOPES)


@router.get("/me")
async def me(request: Request):
    """Get current authenticated user from the session cookie"""
    user = await get_current_user(request)
    return {"email": user.email, "name": user.name, "authenticated": True}


@router.post("/logout")
async def logout(request: Request):
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        end_user_session(token)
    response = JSONResponse(content={"ok": True, "message": "Logged out successfully"})
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/login")
async def login():
    """Initiate Google sign-in"""
    try:
        state = secrets.token_urlsafe(24)
        authorization_url, _ = login_flow().authorization_url(
            access_type="online",
            include_granted_scopes="true",
            state=state,
        )
    except Exception as e:
        _logger.error(f"Error in login: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Authentication error: {str(e)}")

    response = RedirectResponse(authorization_url)
    response.set_cookie(key=STATE_COOKIE, value=state, max_age=600, httponly=True, samesite="lax")
    return response


@router.get("/callback")
async def auth_callback(request: Request):
    """Google sign-in callback: store the user and start a session"""
    code = request.query_params.get("code")
    state = request.query_params.get("state") or ""
    expected_state = request.cookies.get(STATE_COOKIE) or ""
    if not code:
        raise HTTPException(status_code=400, detail="Missing code")
    if not secret_matches(state, expected_state):
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    try:
        flow = login_flow()
        flow.fetch_token(code=code)
        credentials = flow.credentials
        user_info_service = build("oauth2", "v2", credentials=credentials)
        user_info = user_info_service.userinfo().get().execute()
        user_email = user_info.get("email")
        if not user_email:
            raise ValueError("Google did not return an email address")

        store_user(email=user_email, name=user_info.get("name"))
        token = create_user_session(user_email=user_email)
        _logger.info(f"User signed in: {mask_email(user_email)}")
    except Exception as e:
        _logger.error(f"Error in callback: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Callback error: {str(e)}")

    response = RedirectResponse(url=f"{SITE_URL}/", status_code=302)
    response.delete_cookie(STATE_COOKIE)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=3600 * SESSION_TTL_HOURS,
        httponly=True,
        secure=SITE_URL.startswith("https://"),
        samesite="lax",
    )
    return response
