"""Cron entry point that triggers the review sweep over HTTP"""
import logging
import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from turntable_ai.config import CRON_POLL_ATTEMPTS, CRON_POLL_BACKOFF_SECONDS, CRON_SECRET, SITE_URL
from turntable_ai.services.utils.http_utils import secret_matches
from turntable_ai.services.utils.retry import retry_with_linear_backoff

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cron", tags=["cron"])

POLL_TIMEOUT_SECONDS = 300.0


class PollServerError(Exception):
    """The poll endpoint answered with a 5xx."""


async def _post_poll(url: str, headers: dict) -> httpx.Response:
    async with httpx.AsyncClient(timeout=POLL_TIMEOUT_SECONDS) as client:
        response = await client.post(url, headers=headers)
    if response.status_code >= 500:
        raise PollServerError(f"poll returned {response.status_code}")
    return response


@router.post("/gmail-yelp")
async def cron_poll(request: Request):
    """Call /api/google/poll, retrying transport failures and 5xx answers"""
    if not CRON_SECRET:
        return JSONResponse(status_code=500, content={"ok": False, "error": "CRON_SECRET not configured"})

    if not secret_matches(request.headers.get("x-cron-secret"), CRON_SECRET):
        return JSONResponse(
            status_code=401,
            content={
                "ok": False,
                "error": "unauthorized",
                "message": "Missing or invalid x-cron-secret header. This endpoint is for cron only.",
            },
        )

    poll_url = f"{SITE_URL}/api/google/poll"
    headers = {"Content-Type": "application/json", "x-cron-secret": CRON_SECRET}

    try:
        response = await retry_with_linear_backoff(
            lambda: _post_poll(poll_url, headers),
            attempts=CRON_POLL_ATTEMPTS,
            base_delay=CRON_POLL_BACKOFF_SECONDS,
            retry_on=(httpx.TransportError, PollServerError),
        )
    except (httpx.TransportError, PollServerError) as e:
        _logger.error(f"cron poll error: {str(e)}", exc_info=True)
        return JSONResponse(status_code=500, content={"ok": False, "error": "cron_request_failed"})

    try:
        data = response.json()
    except ValueError:
        data = None

    return JSONResponse(
        content={
            "ok": response.is_success,
            "status": response.status_code,
            "polledFrom": poll_url,
            "result": data,
        }
    )
