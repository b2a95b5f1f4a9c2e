"""Google OAuth and Business Profile helpers for the review integration"""
import logging
from google.auth.transport.requests import AuthorizedSession, Request as GoogleAuthRequest
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from turntable_ai.config import (
    GOOGLE_AUTH_URI,
    GOOGLE_INTEGRATIONS_CLIENT_ID,
    GOOGLE_INTEGRATIONS_CLIENT_SECRET,
    GOOGLE_INTEGRATIONS_REDIRECT,
    GOOGLE_TOKEN_URI,
    INTEGRATIONS_SCOPES,
    REVIEW_PAGE_SIZE,
)

_logger = logging.getLogger(__name__)

ACCOUNTS_URL = "https://mybusinessaccountmanagement.googleapis.com/v1/accounts"
LOCATIONS_URL = "https://mybusinessbusinessinformation.googleapis.com/v1/{account}/locations"
REVIEWS_URL = "https://mybusiness.googleapis.com/v4/{location}/reviews"

STAR_RATINGS = {"ONE": 1, "TWO": 2, "THREE": 3, "FOUR": 4, "FIVE": 5}


class GoogleApiError(RuntimeError):
    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(f"Google API error: {status_code} {message}".strip())


def client_config(client_id: str, client_secret: str, redirect_uri: str) -> dict:
    """OAuth client config in the shape ``Flow.from_client_config`` expects."""
    return {
        "web": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": GOOGLE_AUTH_URI,
            "token_uri": GOOGLE_TOKEN_URI,
            "redirect_uris": [redirect_uri],
        }
    }


def build_flow(client_id: str, client_secret: str, redirect_uri: str, scopes: list) -> Flow:
    if not client_id or not client_secret:
        raise ValueError("Missing Google OAuth client id/secret")
    # the callback runs in a new request, so no PKCE verifier can be carried over
    return Flow.from_client_config(
        client_config(client_id, client_secret, redirect_uri),
        scopes=scopes,
        redirect_uri=redirect_uri,
        autogenerate_code_verifier=False,
    )


def integrations_flow() -> Flow:
    return build_flow(
        GOOGLE_INTEGRATIONS_CLIENT_ID,
        GOOGLE_INTEGRATIONS_CLIENT_SECRET,
        GOOGLE_INTEGRATIONS_REDIRECT,
        INTEGRATIONS_SCOPES,
    )


def google_auth_url(state: str) -> str:
    """Consent URL for the Business Profile connection."""
    flow = integrations_flow()
    authorization_url, _ = flow.authorization_url(
        access_type="offline",  # we need a refresh_token
        prompt="consent",  # Google only re-issues refresh tokens on consent
        include_granted_scopes="true",
        state=state,
    )
    return authorization_url


def exchange_code(code: str) -> dict:
    """Trade an authorization code for tokens."""
    flow = integrations_flow()
    flow.fetch_token(code=code)
    credentials = flow.credentials
    return {
        "access_token": credentials.token,
        "refresh_token": credentials.refresh_token,
        "expiry": credentials.expiry,
    }


def refresh_access_token(refresh_token: str) -> dict:
    """
    Exchange a refresh token for a fresh access token.

    Raises:
        google.auth.exceptions.RefreshError: token revoked or client misconfigured
    """
    credentials = Credentials(
        token=None,
        refresh_token=refresh_token,
        token_uri=GOOGLE_TOKEN_URI,
        client_id=GOOGLE_INTEGRATIONS_CLIENT_ID,
        client_secret=GOOGLE_INTEGRATIONS_CLIENT_SECRET,
    )
    credentials.refresh(GoogleAuthRequest())
    return {"access_token": credentials.token, "expiry": credentials.expiry}


def _gfetch(access_token: str, url: str, params: dict = None) -> dict:
    session = AuthorizedSession(Credentials(token=access_token))
    response = session.get(url, params=params)
    if response.status_code >= 400:
        raise GoogleApiError(response.status_code, response.text[:200])
    return response.json()


def list_accounts(access_token: str) -> list[dict]:
    return _gfetch(access_token, ACCOUNTS_URL).get("accounts", [])


def list_locations(access_token: str, account: str) -> list[dict]:
    data = _gfetch(
        access_token,
        LOCATIONS_URL.format(account=account),
        params={"readMask": "name,title"},
    )
    return data.get("locations", [])


def list_reviews(access_token: str, location_name: str) -> list[dict]:
    """Newest reviews for a location (first page only)."""
    data = _gfetch(
        access_token,
        REVIEWS_URL.format(location=location_name),
        params={"orderBy": "updateTime desc", "pageSize": REVIEW_PAGE_SIZE},
    )
    return data.get("reviews", [])


def star_to_number(star: str | None) -> int | None:
    if not star:
        return None
    return STAR_RATINGS.get(star)
