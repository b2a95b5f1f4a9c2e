import logging
from googleapiclient.discovery import build
from google.oauth2.credentials import Credentials
from turntable_ai.config import (
    GMAIL_SCOPES,
    GMAIL_YELP_CLIENT_ID,
    GMAIL_YELP_CLIENT_SECRET,
    GMAIL_YELP_REDIRECT_URI,
)
from turntable_ai.services.google_services import build_flow
from turntable_ai.services.utils.logger_config import mask_email

_logger = logging.getLogger(__name__)


def gmail_env_configured() -> bool:
    return bool(GMAIL_YELP_CLIENT_ID and GMAIL_YELP_CLIENT_SECRET and GMAIL_YELP_REDIRECT_URI)


def gmail_flow():
    return build_flow(
        GMAIL_YELP_CLIENT_ID,
        GMAIL_YELP_CLIENT_SECRET,
        GMAIL_YELP_REDIRECT_URI,
        GMAIL_SCOPES,
    )


def gmail_auth_url(state: str) -> str:
    """Consent URL for the mailbox that receives Yelp review alerts."""
    authorization_url, _ = gmail_flow().authorization_url(
        access_type="offline",
        prompt="consent",
        include_granted_scopes="true",
        state=state,
    )
    return authorization_url


def exchange_gmail_code(code: str) -> Credentials:
    flow = gmail_flow()
    flow.fetch_token(code=code)
    return flow.credentials


def get_gmail_address(credentials: Credentials) -> str | None:
    """Address of the connected mailbox, or None when userinfo is unavailable."""
    try:
        user_info_service = build("oauth2", "v2", credentials=credentials)
        user_info = user_info_service.userinfo().get().execute()
    except Exception as e:
        _logger.warning(f"Could not read Gmail userinfo: {str(e)}")
        return None
    address = user_info.get("email")
    _logger.info(f"Gmail mailbox resolved: {mask_email(address)}")
    return address
